import argparse
import asyncio
import json
from typing import Any, Dict

from adapters.factory import PersistenceConfig
from persistence.diagnostics import describe_persistence
from persistence.initializer import Persistence
from utils.env_loader import load_environments
from utils.logging_config import configure_logging


async def run_init(config: PersistenceConfig) -> Dict[str, Any]:
    persistence = Persistence(config)
    try:
        adapter = await persistence.initialize()
        return {
            "status": "ok",
            "engine": adapter.engine,
            "tables": persistence.schema_report.tables,
            "columns_added": persistence.schema_report.columns_added,
            "seeds": persistence.seed_summary,
            "diagnostics": describe_persistence(config, persistence.state),
        }
    finally:
        await persistence.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the schema and install reference data.")
    parser.add_argument("command", choices=["init", "diagnostics"], help="init: create schema and seed; diagnostics: show backend selection.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    args = parser.parse_args(argv)

    load_environments()
    configure_logging()
    config = PersistenceConfig.from_env()

    if args.command == "init":
        result = asyncio.run(run_init(config))
    else:
        result = describe_persistence(config)

    if args.pretty:
        print(json.dumps(result, indent=2, default=str))
    else:
        print(json.dumps(result, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
