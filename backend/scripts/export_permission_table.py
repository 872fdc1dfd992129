"""
Write the compiled-in permission table as a JSON document.

The output is the starting point for a PERMISSION_TABLE_PATH file: edit it,
then point the service at it. The file is validated on load, so an incomplete
table stops startup.

Usage:
    python -m scripts.export_permission_table [output.json]
"""
import json
import os
import sys

# Add parent directory to path to import projecthub modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from projecthub.auth.permission_table import dump_permission_table
from projecthub.auth.rbac_contract import ROLE_PERMISSIONS


def export_permission_table(output_path: str | None = None) -> None:
    document = dump_permission_table(ROLE_PERMISSIONS)
    rendered = json.dumps(document, indent=2) + "\n"

    if output_path is None:
        sys.stdout.write(rendered)
        return

    with open(output_path, "w", encoding="utf-8") as handle:
        handle.write(rendered)
    print(f"✓ Wrote {len(document['roles'])} roles to {output_path}", file=sys.stderr)


if __name__ == "__main__":
    export_permission_table(sys.argv[1] if len(sys.argv) > 1 else None)
