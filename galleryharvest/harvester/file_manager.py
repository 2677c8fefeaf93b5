"""
File I/O for harvest outputs.
"""

import json
from pathlib import Path
from typing import Union

from galleryharvest.harvester.models import HarvestPayload


def write_payload(payload: HarvestPayload, path: Union[str, Path]) -> Path:
    """
    Write the payload as pretty-printed JSON, creating parent directories.

    Args:
        payload: Success or failure payload
        path: Output file (e.g. public/gallery.json)

    Returns:
        Path written

    Example:
        >>> write_payload(HarvestPayload.success("https://www.cosmos.so/rlphoto/swim", []), "public/gallery.json")
        PosixPath('public/gallery.json')
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(
        json.dumps(payload.to_dict(), ensure_ascii=False, indent=2),
        "utf-8"
    )
    return out
