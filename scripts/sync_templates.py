"""
Write the code-defined workflow templates to the database.

Usage:
  python scripts/sync_templates.py [--force]

Only templates missing from the database are written unless --force is given.
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pressroom.config import get_settings
from pressroom.database import build_engine, build_session_factory, init_db
from pressroom.services.template_registry import TemplateRegistry
from pressroom.services.workflow_store import WorkflowStore


async def main() -> None:
    engine = build_engine(get_settings())
    try:
        init_db(engine)
        store = WorkflowStore(build_session_factory(engine))
        registry = TemplateRegistry.with_builtin_templates()
        written = await registry.sync_to_store(store, overwrite="--force" in sys.argv[1:])
        total = len(await store.list_templates())
        print(f"sync_templates written={written} total={total}")
    finally:
        engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
