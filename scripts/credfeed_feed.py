#!/usr/bin/env python3
# scripts/credfeed_feed.py

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from credfeed.core.config import StoreBackend, load_config
from credfeed.core.service import CredFeedService
from credfeed.exceptions import CredFeedError
from credfeed.model.schema import RecordKind
from credfeed.store.snapshot import read_snapshot_file, write_snapshot_file

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("credfeed_feed")


def resolve_user_id(service: CredFeedService, viewer: str) -> Optional[str]:
    """Accept either a user id or a username."""
    if service.store.exists(RecordKind.USER, viewer):
        return viewer
    user = service.find_user(viewer)
    return user.id if user else None


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="credfeed feed materialization tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Rebuild alice's feed from a snapshot
  credfeed_feed.py --snapshot graph.json --viewer alice

  # Delete a post with its comment tree, then rebuild and save
  credfeed_feed.py --snapshot graph.json --delete-content 5f2c... --viewer alice --save
        """,
    )

    parser.add_argument(
        "--snapshot", help="JSON snapshot to load (memory backend only)"
    )
    parser.add_argument("--viewer", help="Username or user id whose feed to refresh")
    parser.add_argument(
        "--output", help="Write the feed ids as JSON to this file instead of stdout"
    )
    parser.add_argument(
        "--delete-content", action="append", default=[], metavar="ID",
        help="Cascade-delete a content item before refreshing (repeatable)",
    )
    parser.add_argument(
        "--delete-user", action="append", default=[], metavar="ID",
        help="Cascade-delete a user before refreshing (repeatable)",
    )
    parser.add_argument(
        "--save", action="store_true", help="Write the store back to --snapshot"
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Configuration file path (default: config/config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except CredFeedError as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    if config.store.backend == StoreBackend.MEMORY and not args.snapshot:
        logger.error("The memory backend needs --snapshot")
        return 1

    with CredFeedService(config=config) as service:
        if args.snapshot and config.store.backend == StoreBackend.MEMORY:
            snapshot_path = Path(args.snapshot).resolve()
            if not snapshot_path.exists():
                logger.error(f"Snapshot not found: {snapshot_path}")
                return 1
            read_snapshot_file(service.store, snapshot_path)

        try:
            for content_id in args.delete_content:
                service.cascade_delete_content(content_id)
            for user_id in args.delete_user:
                service.cascade_delete_user(user_id)

            feed_ids = None
            if args.viewer:
                viewer_id = resolve_user_id(service, args.viewer)
                if viewer_id is None:
                    logger.error(f"Unknown viewer: {args.viewer}")
                    return 1
                feed_ids = service.refresh_feed(viewer_id)
        except CredFeedError as e:
            logger.error(f"{e.__class__.__name__}: {e.message}")
            return 1

        if feed_ids is not None:
            if args.output:
                output_path = Path(args.output).resolve()
                output_path.parent.mkdir(parents=True, exist_ok=True)
                with open(output_path, "w", encoding="utf-8") as f:
                    json.dump(feed_ids, f, indent=2)
                logger.info(f"Wrote {len(feed_ids)} feed items to {output_path}")
            else:
                print(json.dumps(feed_ids, indent=2))

        if args.save and args.snapshot:
            write_snapshot_file(service.store, args.snapshot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
