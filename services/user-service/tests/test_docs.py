from __future__ import annotations

import importlib
import re
from pathlib import Path

DOCS_DIR = Path(__file__).resolve().parent.parent / "docs"


def test_index_links_api_page():
    index = (DOCS_DIR / "index.rst").read_text()
    assert re.search(r"^\s+api$", index, re.MULTILINE)


def test_api_page_modules_are_importable():
    modules = re.findall(r"^\.\. automodule:: (\S+)$", (DOCS_DIR / "api.rst").read_text(), re.MULTILINE)
    assert "user_service.domain.service" in modules
    for name in modules:
        importlib.import_module(name)
