"""
Run a full reindex from the command line.

Drives the paginated reindex for each requested entity kind until the run
reports it is finished. An interrupted run can be resumed by passing the same
--session-id and the page to continue from.
"""

import argparse
import asyncio
import logging
import os
import sys
import uuid

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from cms_search_sync.api.dependencies import get_paginator
from cms_search_sync.cms.models import EntityKind
from cms_search_sync.main import register_computed_fields

logger = logging.getLogger("sync.cli")


async def run_kind(kind: EntityKind, session_id: str, start_page: int) -> bool:
    paginator = get_paginator()

    status = await paginator.reindex(kind, session_id, 0)
    logger.info("%s: %d items queued", kind.value, status.queued)

    page = start_page
    had_errors = False
    while True:
        status = await paginator.reindex(kind, session_id, page)
        logger.info("%s", status.message)
        had_errors = had_errors or status.error
        if status.finished:
            return not had_errors
        page += 1


async def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--kind",
        action="append",
        choices=[k.value for k in EntityKind],
        help="Entity kind to reindex (repeatable). Defaults to all kinds.",
    )
    parser.add_argument("--session-id", default=None, help="Resume an existing session.")
    parser.add_argument("--page", type=int, default=1, help="Page to start from.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    register_computed_fields()

    session_id = args.session_id or uuid.uuid4().hex
    kinds = [EntityKind(k) for k in args.kind] if args.kind else list(EntityKind)
    logger.info("Reindex session %s for %s", session_id, ", ".join(k.value for k in kinds))

    ok = True
    for kind in kinds:
        ok = await run_kind(kind, session_id, args.page) and ok

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
