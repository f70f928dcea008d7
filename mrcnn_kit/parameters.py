"""
Reader/writer for the "* PARAMETER: KEY = value" text blocks models ship with.

Example block:

    /*
     * PARAMETER: IMAGE_MIN_DIM = 800
     * PARAMETER: MEAN_PIXEL = [123.7, 116.8, 103.9]
     * - PARAMETERS_MODIFIED_AT_RUNTIME -
     * RUNTIME_PARAMETER: WINDOW_SIZE = [0.0, 0.0, 1024.0, 1024.0]
     */

Only text goes in and out here; reading the file is the one exception
(`load_parameters`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Union

from .types import RuntimeParameters, format_array


PARAMETER_FLAG = "PARAMETER:"
RUNTIME_FLAG = "RUNTIME_PARAMETER:"
RUNTIME_SECTION = "- PARAMETERS_MODIFIED_AT_RUNTIME -"

__all__ = [
    "format_array",
    "load_parameters",
    "parse_parameters",
    "update_runtime_parameters",
]


def _is_parameter_line(line: str) -> bool:
    return PARAMETER_FLAG in line and "*" in line and f"'{PARAMETER_FLAG}'" not in line


def parse_parameters(text: str) -> Dict[str, str]:
    """
    Collect every "KEY = value" that follows a PARAMETER:/RUNTIME_PARAMETER: flag.

    Later lines win when a key repeats.
    """

    params: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not _is_parameter_line(line):
            continue
        body = line[line.index(PARAMETER_FLAG) + len(PARAMETER_FLAG) :]
        if "=" not in body:
            continue
        key, value = body.split("=", 1)
        key = key.strip()
        if key:
            params[key] = value.strip()
    return params


def load_parameters(path: Union[str, Path]) -> Dict[str, str]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Parameter file not found: {p}")
    return parse_parameters(p.read_text(encoding="utf-8"))


def update_runtime_parameters(text: str, runtime: RuntimeParameters) -> str:
    """
    Rewrite the RUNTIME_PARAMETER lines for WINDOW_SIZE, ORIGINAL_IMAGE_SIZE and
    PROCESSING_IMAGE_SIZE. Only lines after the runtime section marker change;
    other keys and lines are kept byte for byte.
    """

    values = runtime.to_mapping()
    out = []
    in_section = False
    for line in text.splitlines(keepends=True):
        if RUNTIME_SECTION in line and f"'{RUNTIME_SECTION}'" not in line:
            in_section = True
        if in_section and RUNTIME_FLAG in line:
            body = line[line.index(RUNTIME_FLAG) + len(RUNTIME_FLAG) :]
            key = body.split("=", 1)[0].strip()
            if key in values:
                ending = line[len(line.rstrip("\r\n")) :]
                line = f" * {RUNTIME_FLAG} {key} = {values[key]}{ending}"
        out.append(line)
    return "".join(out)
