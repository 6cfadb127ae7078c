import sys
from pathlib import Path

from docsplit.config.settings import Settings
from docsplit.database.connection import close_pool, get_connection, init_pool
from docsplit.database.migrations import apply_schema
from docsplit.domain import DomainError
from docsplit.logging.logger import Log
from docsplit.service.split_service import build_split_service


def main(argv: list[str] | None = None) -> int:
    """Entry point: initialize pool -> apply schema -> ingest each split JSON file.

    Returns 1 if any file could not be ingested, 0 otherwise.
    """
    paths = [Path(arg) for arg in (sys.argv[1:] if argv is None else argv)]
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(f"Starting split ingest for {len(paths)} files (env: {settings.app_env})")
    init_pool(settings)

    failures = 0
    try:
        with get_connection() as conn:
            apply_schema(conn)
        service = build_split_service(settings)
        for path in paths:
            try:
                split_id = service.ingest_split(path.read_bytes())
            except (DomainError, OSError) as exc:
                failures += 1
                Log.error(f"Failed to ingest {path}: {exc}")
                continue
            Log.info(f"Ingested {path} as split {split_id}")
    finally:
        close_pool()

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
