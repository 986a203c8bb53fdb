#!/usr/bin/env python3
"""
Replaces the FD issuer collection with the issuers in a JSON file.

Usage:
    python scripts/import_fd_schemes.py sample-fd-data.json

The file holds a JSON array of issuers with nested schemes and rate slabs.
Every issuer must carry an ``issuer_key`` and at least one scheme, and
every scheme at least one rate slab. All issuers are parsed and run
through the business rules first; the collection is only truncated and
reloaded when the whole file is clean.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Tuple

from pydantic import ValidationError

from fdcatalog.core.exceptions import ConflictError
from fdcatalog.database.connection import init_db
from fdcatalog.database.models.fd_issuer_model import FDIssuer
from fdcatalog.services.fd_catalog_service import ensure_unique_ids, strip_compounding
from fdcatalog.services.fd_issuer_store import FDIssuerStore
from fdcatalog.services.fd_validation import validate_issuer

logger = logging.getLogger("import_fd_schemes")


class CatalogImportError(Exception):
    pass


def check_structure(raw_issuers: Any) -> None:
    if not isinstance(raw_issuers, list):
        raise CatalogImportError("Expected a JSON array of issuers")
    for raw in raw_issuers:
        if not isinstance(raw, dict) or not raw.get("issuer_key"):
            raise CatalogImportError(f"Issuer missing issuer_key: {json.dumps(raw)[:50]}")
        schemes = raw.get("schemes")
        if not isinstance(schemes, list) or not schemes:
            raise CatalogImportError(f"Issuer {raw['issuer_key']} missing or empty schemes array")
        for scheme in schemes:
            slabs = scheme.get("rate_slabs") if isinstance(scheme, dict) else None
            if not isinstance(slabs, list) or not slabs:
                raise CatalogImportError(
                    f"Issuer {raw['issuer_key']}, Scheme {scheme.get('scheme_id') if isinstance(scheme, dict) else scheme} "
                    "missing or empty rate_slabs array"
                )


def parse_issuers(raw_issuers: List[dict]) -> List[FDIssuer]:
    issuers: List[FDIssuer] = []
    seen = set()
    for raw in raw_issuers:
        key = raw["issuer_key"]
        if key in seen:
            raise CatalogImportError(f"Duplicate issuer_key in file: {key}")
        seen.add(key)
        try:
            issuer = FDIssuer.model_validate(raw)
        except ValidationError as e:
            raise CatalogImportError(f"Issuer {key} is malformed: {e}") from e
        try:
            ensure_unique_ids(issuer)
        except ConflictError as e:
            raise CatalogImportError(f"Issuer {key}: {e.message}") from e
        for scheme in issuer.schemes:
            strip_compounding(scheme)
        errors = validate_issuer(issuer)
        if errors:
            raise CatalogImportError(f"Issuer {key} failed validation: " + "; ".join(errors))
        issuers.append(issuer)
    return issuers


def summarize(issuers: List[FDIssuer]) -> Tuple[int, int, int]:
    total_schemes = sum(len(issuer.schemes) for issuer in issuers)
    total_slabs = sum(len(scheme.rate_slabs or []) for issuer in issuers for scheme in issuer.schemes)
    return len(issuers), total_schemes, total_slabs


def load_file(path: Path) -> List[FDIssuer]:
    print(f"Reading {path}...")
    raw_issuers = json.loads(path.read_text(encoding="utf-8"))
    check_structure(raw_issuers)
    print(f"Loaded {len(raw_issuers)} issuers, structure OK")
    return parse_issuers(raw_issuers)


async def run_import(path: Path, store: FDIssuerStore = None) -> Tuple[int, int, int]:
    issuers = load_file(path)
    if store is None:
        await init_db()
        store = FDIssuerStore()
    imported = await store.replace_all(issuers)
    print(f"FD issuers imported: {imported}/{len(issuers)} records")
    return summarize(issuers)


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Import FD issuers, schemes and rate slabs from JSON")
    parser.add_argument("file", type=Path, help="JSON array of issuers with nested schemes and rate slabs")
    args = parser.parse_args(argv)

    try:
        issuers, schemes, slabs = asyncio.run(run_import(args.file))
    except (CatalogImportError, json.JSONDecodeError, OSError) as e:
        logger.error(f"Import aborted: {e}")
        print(f"Error during import: {e}", file=sys.stderr)
        return 1

    print("Import completed successfully!")
    print(f"   - Total Issuers: {issuers}")
    print(f"   - Total Schemes: {schemes}")
    print(f"   - Total Rate Slabs: {slabs}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
