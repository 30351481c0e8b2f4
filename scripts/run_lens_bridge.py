#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[lens] bridge={os.environ.get('LENS_BRIDGE_HOST', '127.0.0.1')}:{os.environ.get('LENS_BRIDGE_PORT', '9333')} | "
    f"cdp={os.environ.get('LENS_CDP_HOST', '127.0.0.1')}:{os.environ.get('LENS_CDP_PORT', '9222')} | "
    f"target={os.environ.get('LENS_TARGET_URL') or '(first page)'}",
    file=sys.stderr,
)

from mcp_servers.lens.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:] or ["serve"]))
