"""
Shared fixtures and utilities for nsbrowse tests.

This module provides common test fixtures used across multiple test files.
"""
import sys
import importlib.util
from pathlib import Path
from unittest.mock import MagicMock
import pytest

SCRIPTS_DIR = Path(__file__).parent.parent / 'scripts'

# Add scripts directory to path for imports
sys.path.insert(0, str(SCRIPTS_DIR))


def load_script(module_name, file_name):
    """Loads a hyphenated script from scripts/ as a module."""
    spec = importlib.util.spec_from_file_location(module_name, SCRIPTS_DIR / file_name)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


# ============================================================================
# Email Fixtures
# ============================================================================

@pytest.fixture
def sample_plain_email():
    """Create a sample plain text email."""
    return """From: sender@example.com
To: recipient@example.com
Subject: Test Subject
Date: Wed, 25 Dec 2025 22:00:00 +0000
Message-ID: <test123@example.com>

This is a plain text email body.
It has multiple lines.
"""


@pytest.fixture
def sample_news_article():
    """Create a sample news article with folded and extra headers."""
    return """Path: news.example.com!not-for-mail
From: poster@example.com
Newsgroups: comp.lang.python
Subject: A question about
 folded subjects
X-Trace: news.example.com 1735164000 12345
Date: Wed, 25 Dec 2025 22:00:00 +0000

Article body.
"""


@pytest.fixture
def temp_email_file(tmp_path, sample_plain_email):
    """Create a temporary email file."""
    email_file = tmp_path / "test_email.eml"
    email_file.write_text(sample_plain_email)
    return email_file


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def temp_dir(tmp_path):
    """Directory receiving the exported temporary files."""
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def sample_config_content(temp_dir):
    """Generate sample TOML config content."""
    return f"""[browser]
program = "mozilla"
display = ""
new_window = false

[temp_files]
template = "{temp_dir}/nsbrowse%d.msg"
file_mode = "0600"
keep = false
wait_for_access = true

[headers]
visible = ["From", "To", "Subject", "Date"]
"""


@pytest.fixture
def temp_config_file(tmp_path, sample_config_content):
    """Create a temporary config file with sample content."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "config.toml"
    config_file.write_text(sample_config_content)
    return str(config_file)


@pytest.fixture
def export_settings(temp_dir):
    """ExportSettings writing into the test directory."""
    from config import ExportSettings
    return ExportSettings(
        browser_program="netscape",
        temp_template=str(temp_dir / "nsbrowse%d.msg"),
    )


# ============================================================================
# Mock Helpers
# ============================================================================

@pytest.fixture
def completed_process():
    """Build a mock result of subprocess.run."""
    def _make(returncode=0, stdout=''):
        return MagicMock(returncode=returncode, stdout=stdout)
    return _make


@pytest.fixture
def umask_value():
    """Read the current process umask without changing it."""
    import os

    def _read():
        mask = os.umask(0)
        os.umask(mask)
        return mask
    return _read
