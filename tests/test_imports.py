import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

MODULES = [
    "analyzers.block_detector",
    "analyzers.column_detector",
    "analyzers.font_analyzer",
    "analyzers.heading_detector",
    "analyzers.line_detector",
    "analyzers.list_analyzer",
    "analyzers.list_detector",
    "analyzers.paragraph_detector",
    "analyzers.reading_order",
    "core.pdf_text_extractor",
    "processor",
    "processor.pipeline",
    "utils.file_io",
    "utils.json_serializer",
    "main",
]


@pytest.mark.parametrize("module", MODULES)
def test_module_imports_first_in_a_fresh_interpreter(module):
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=str(PROJECT_ROOT),
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, result.stderr
