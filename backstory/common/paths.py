"""Filesystem locations, all relative to the checkout."""

from __future__ import annotations

from pathlib import Path


def repo_root() -> Path:
    # <repo>/backstory/common/paths.py
    return Path(__file__).resolve().parents[2]


def env_file() -> Path:
    return repo_root() / ".env"


def data_dir() -> Path:
    return repo_root() / "data"


def media_dir() -> Path:
    return repo_root() / "media"
