"""
Seed Model Declarations Script
Loads model declarations from a directory of JSON files into the configured
model store and optionally publishes them (creates their tables).
Can be run manually or as part of a deployment job.

    python -m app.scripts.seed_models ./models --publish
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from pydantic import ValidationError
from app.config import settings
from app.database.engine import get_engine
from app.modules.models.materializer import MaterializationError, SchemaMaterializer
from app.modules.models.schemas import ModelDeclaration
from app.modules.models.store import ModelStore, build_model_store, find_route_conflict
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_models(store: ModelStore, source_dir: Path, materializer: SchemaMaterializer = None):
    """Save every valid declaration found in source_dir; materialize when a materializer is given"""
    logger.info(f"Seeding model declarations from {source_dir}...")

    saved_count = 0
    published_count = 0
    failed = []

    for path in sorted(Path(source_dir).glob("*.json")):
        try:
            declaration = ModelDeclaration.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Invalid model declaration in {path.name}: {e}")
            failed.append(path.name)
            continue

        existing = find_route_conflict(store, declaration)
        if existing is not None:
            logger.error(f"Model {declaration.name} in {path.name} clashes with stored model {existing.name}")
            failed.append(path.name)
            continue

        store.save(declaration)
        saved_count += 1
        logger.debug(f"Saved model: {declaration.name}")

        if materializer is not None:
            try:
                materializer.materialize(declaration)
                published_count += 1
            except MaterializationError as e:
                logger.error(f"Error publishing model {declaration.name}: {e}")
                failed.append(path.name)

    logger.info(f"Models seeded: {saved_count} saved, {published_count} published, {len(failed)} failed")
    return {"saved": saved_count, "published": published_count, "failed": failed}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed model declarations")
    parser.add_argument("source_dir", nargs="?", default=settings.models_dir)
    parser.add_argument("--publish", action="store_true", help="Also create the physical tables")
    args = parser.parse_args(argv)

    store = build_model_store(settings)
    materializer = SchemaMaterializer(get_engine()) if args.publish else None
    try:
        result = seed_models(store, Path(args.source_dir), materializer)
        logger.info("Seeding completed")
        return 1 if result["failed"] else 0
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
