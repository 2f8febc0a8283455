"""Load field definitions from a JSON file into the ``fields`` table.

    python scripts/load_fields.py fields.json

The file holds a list of objects with FieldDefinition keys, e.g.:

    [
      {"name": "email", "form_element": "text-line", "validation": "email-regex"},
      {"name": "first_name", "validation": "yes", "persistent": true}
    ]

List order becomes the registry order. Existing fields with the same name
are updated in place.
"""
import asyncio
import json
import logging
import sys
from pathlib import Path

# Resolve project root so imports work when run from any cwd
_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_ROOT))

from pydantic import TypeAdapter

from db.connection import dispose_engine, get_db
from records.registry import save_field
from schemas import FieldDefinition

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)

_definitions_adapter = TypeAdapter(list[FieldDefinition])


def read_definitions(path: Path) -> list[FieldDefinition]:
    return _definitions_adapter.validate_python(json.loads(path.read_text()))


async def load(path: Path) -> int:
    definitions = read_definitions(path)
    try:
        async with get_db() as session:
            for position, definition in enumerate(definitions):
                await save_field(session, definition, position)
    finally:
        await dispose_engine()
    logger.info("Loaded %d field definition(s) from %s", len(definitions), path)
    return len(definitions)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(load(Path(sys.argv[1])))
