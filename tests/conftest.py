"""Pytest fixtures shared across the test suite."""

import os
import tempfile

os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='pnpfinder-logs-'))
for _name in ('GITHUB_TOKEN', 'GITHUB_OWNER', 'GITHUB_REPO'):
    os.environ.pop(_name, None)

import pytest


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Point the catalog at an empty per-test data directory."""

    path = tmp_path / 'data'
    path.mkdir()
    monkeypatch.setenv('DATA_DIR', str(path))
    yield path
