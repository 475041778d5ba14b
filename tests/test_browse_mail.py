"""
Integration tests for browse-mail.py and set-browser-display.py.

Tests for:
- browse_mail()
- main() of both scripts
- prompt_for_display()

All tests use mocking for subprocess calls and dialogs.
"""
import os
import sys
import pytest
import toml
from unittest.mock import MagicMock, patch

from conftest import load_script

browse_mail_script = load_script("browse_mail", "browse-mail.py")
set_display_script = load_script("set_browser_display", "set-browser-display.py")

from config import Config
from exporter import BrowserError
from message_buffer import MessageBuffer
import header_modes as header_modes_module


@pytest.fixture(autouse=True)
def no_waiting():
    with patch('exporter.time.sleep'):
        yield


class TestBrowseMail:
    """Tests for browse_mail()."""

    @pytest.mark.parametrize("mode", ["mbox", "babyl", "article"])
    @patch('exporter.subprocess.run')
    def test_exports_full_message(self, mock_run, mode, temp_email_file, temp_config_file,
                                  temp_dir, sample_plain_email, completed_process):
        exported = {}

        def browser(command, **kwargs):
            path = command[-1][len("openURL(file:"):-1]
            with open(path) as f:
                exported["text"] = f.read()
            return completed_process(0)

        mock_run.side_effect = browser
        config = Config(temp_config_file)
        ok = browse_mail_script.browse_mail(temp_email_file, mode, config, use_gui=False)

        assert ok is True
        assert mock_run.call_args[0][0][0] == "mozilla"
        assert "Message-ID: <test123@example.com>" in exported["text"]
        assert os.listdir(temp_dir) == []

    @patch('exporter.subprocess.run')
    def test_keep_and_display_options(self, mock_run, temp_email_file, temp_config_file,
                                      temp_dir, completed_process):
        mock_run.return_value = completed_process(0)
        config = Config(temp_config_file)
        with patch.dict(os.environ, {"DISPLAY": ":0"}):
            browse_mail_script.browse_mail(temp_email_file, "article", config, new_window=True,
                                           keep=True, display="far:0.0", use_gui=False)

        assert len(os.listdir(temp_dir)) == 1
        assert mock_run.call_args[1]["env"]["DISPLAY"] == "far:0.0"
        assert mock_run.call_args[0][0][-1].endswith(",new-window)")

    @patch('exporter.subprocess.run')
    def test_unknown_mode_exports_file_as_is(self, mock_run, temp_email_file, temp_config_file,
                                             sample_plain_email, completed_process):
        mock_run.return_value = completed_process(0)
        config = Config(temp_config_file)
        assert browse_mail_script.browse_mail(temp_email_file, "text", config, use_gui=False) is True

    @patch('exporter.subprocess.run')
    def test_browser_output_is_displayed(self, mock_run, temp_email_file, temp_config_file,
                                         completed_process):
        mock_run.return_value = completed_process(0, stdout="remote warning")
        config = Config(temp_config_file)
        with patch.object(browse_mail_script, 'display_text') as mock_display:
            browse_mail_script.browse_mail(temp_email_file, "article", config, use_gui=False)
        mock_display.assert_called_once_with("mozilla output", "remote warning", use_gui=False)


class TestBrowseMailMain:
    """Tests for browse-mail main()."""

    def test_missing_file_exits(self, tmp_path, temp_config_file):
        argv = ["browse-mail", str(tmp_path / "nope.eml"), "--config", temp_config_file]
        with patch.object(sys, 'argv', argv):
            with pytest.raises(SystemExit) as exc:
                browse_mail_script.main()
        assert exc.value.code == 1

    @patch('exporter.subprocess.run')
    def test_browser_error_reported(self, mock_run, temp_email_file, temp_config_file, completed_process):
        mock_run.return_value = completed_process(1)
        argv = ["browse-mail", str(temp_email_file), "--config", temp_config_file, "--no-gui"]
        with patch.object(sys, 'argv', argv), \
                patch.object(browse_mail_script, 'display_error') as mock_error:
            with pytest.raises(SystemExit) as exc:
                browse_mail_script.main()
        assert exc.value.code == 1
        title, message = mock_error.call_args[0]
        assert title == "Browser Error"
        assert "exit status 1" in message

    @pytest.mark.parametrize("setting, value", [
        ("file_mode", '"rw-------"'),
        ("template", '"/tmp/nsbrowse%q.msg"'),
    ])
    @patch('exporter.subprocess.run')
    def test_bad_setting_reported(self, mock_run, setting, value, tmp_path, temp_email_file):
        config_file = tmp_path / "bad.toml"
        config_file.write_text(f"[temp_files]\n{setting} = {value}\n")
        argv = ["browse-mail", str(temp_email_file), "--config", str(config_file), "--no-gui"]
        with patch.object(sys, 'argv', argv), \
                patch.object(browse_mail_script, 'display_error') as mock_error:
            with pytest.raises(SystemExit) as exc:
                browse_mail_script.main()
        assert exc.value.code == 1
        assert mock_error.call_args[0][0] == "Export Error"
        mock_run.assert_not_called()

    @patch('exporter.subprocess.run')
    def test_broken_babyl_record_reported(self, mock_run, tmp_path, temp_config_file):
        mail_file = tmp_path / "broken.babyl"
        mail_file.write_text("no record here\n")
        argv = ["browse-mail", str(mail_file), "--mode", "babyl", "--config", temp_config_file, "--no-gui"]
        with patch.object(header_modes_module.BabylMode, 'present',
                          lambda self, raw, visible=None: MessageBuffer(raw, "babyl")), \
                patch.object(sys, 'argv', argv), \
                patch.object(browse_mail_script, 'display_error') as mock_error:
            with pytest.raises(SystemExit) as exc:
                browse_mail_script.main()
        assert exc.value.code == 1
        assert "Babyl" in mock_error.call_args[0][1]
        mock_run.assert_not_called()

    @patch('exporter.subprocess.run')
    def test_success(self, mock_run, temp_email_file, temp_config_file, completed_process):
        mock_run.return_value = completed_process(0)
        argv = ["browse-mail", str(temp_email_file), "--mode", "babyl",
                "--config", temp_config_file, "--no-gui"]
        with patch.object(sys, 'argv', argv):
            browse_mail_script.main()
        command = mock_run.call_args[0][0]
        assert "-noraise" not in command
        assert command[1] == "-remote"


class TestSetBrowserDisplay:
    """Tests for set-browser-display.py."""

    def test_prompt_uses_default_on_empty_answer(self, temp_config_file):
        config = Config(temp_config_file)
        with patch.dict(os.environ, {"DISPLAY": ":3"}):
            display = set_display_script.prompt_for_display(config, input_func=lambda prompt: "  ")
        assert display == ":3"

    def test_prompt_returns_answer(self, temp_config_file):
        config = Config(temp_config_file)
        prompts = []

        def answer(prompt):
            prompts.append(prompt)
            return "host:1.0"

        with patch.dict(os.environ, {"DISPLAY": ":3"}):
            assert set_display_script.prompt_for_display(config, input_func=answer) == "host:1.0"
        assert ":3" in prompts[0]

    def test_main_saves_display(self, temp_config_file, capsys):
        with patch.object(sys, 'argv', ["set-browser-display", "desk:0.0", "--config", temp_config_file]):
            set_display_script.main()
        assert toml.load(temp_config_file)["browser"]["display"] == "desk:0.0"
        assert capsys.readouterr().out.strip() == "desk:0.0"

    def test_main_prompts_without_argument(self, temp_config_file):
        with patch.object(sys, 'argv', ["set-browser-display", "--config", temp_config_file]), \
                patch('builtins.input', return_value="typed:2"):
            set_display_script.main()
        assert Config(temp_config_file).target_display() == "typed:2"
