"""
Embed a search data file into the vector store.

Usage:
    python scripts/index_docs.py data/search/en.json en
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from docs_assistant.db import AsyncSessionLocal, VectorStore, init_db
from docs_assistant.embeddings.embedder import Embedder, embedding_input
from docs_assistant.namespaces import validate_namespace
from docs_assistant.search.index_cache import JsonSearchDataLoader


async def main(path: Path, namespace: str, replace: bool) -> None:
    namespace = validate_namespace(namespace)

    print(f"Loading sections from {path}...")
    sections = await JsonSearchDataLoader(path.parent)(path.stem)
    if not sections:
        print("No sections to index.")
        return
    print(f"Found {len(sections)} sections.")

    print("Creating embeddings (this may take time)...")
    embeddings = await Embedder().embed([embedding_input(s) for s in sections])

    await init_db()
    async with AsyncSessionLocal() as session:
        store = VectorStore(session)
        if replace:
            deleted = await store.delete_namespace(namespace)
            print(f"Removed {deleted} existing rows from '{namespace}'.")

        count = await store.upsert_sections(namespace, sections, embeddings)
        await store.commit()

    print(f"Done! Stored {count} embeddings in '{namespace}'.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("path", type=Path, help="Search data JSON file")
    parser.add_argument("namespace", help="Namespace to store the sections under")
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Delete the namespace's existing embeddings first",
    )
    args = parser.parse_args()
    asyncio.run(main(args.path, args.namespace, args.replace))
