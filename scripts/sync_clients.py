#!/usr/bin/env python3
"""
Sync tenant definitions from a JSON file into the clients table.
Usage: python scripts/sync_clients.py clients.json [--dry-run]

clients.json:
    {"defaultClientId": "onmore",
     "clients": [{"id": "onmore", "name": "OnMore", "active": true,
                  "domain": "onmore.au", "allowedOrigins": [...],
                  "instagramRecipientIds": [...], "promptFile": "prompts/onmore.json"}]}

promptFile paths are resolved relative to clients.json and hold a chatbot config.
"""

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from relay_api.database import Base, SessionLocal, engine
from relay_api.models import Client
from relay_api.schemas.chatbot_config import ChatbotConfig


def load_config(base_dir: Path, prompt_file: Optional[str]) -> dict:
    if not prompt_file:
        return {}
    with open(base_dir / prompt_file, "r", encoding="utf-8") as f:
        raw = json.load(f)
    # validate now so a broken file fails the sync instead of a live request
    ChatbotConfig.model_validate(raw)
    return raw


def build_row(entry: dict, base_dir: Path) -> dict:
    config = load_config(base_dir, entry.get("promptFile"))
    allowed = entry.get("allowedOrigins")
    if allowed is not None:
        config["allowedOrigins"] = list(allowed)
    return {
        "id": entry["id"],
        "name": entry.get("name") or entry["id"],
        "status": "active" if entry.get("active", True) else "inactive",
        "domain": entry.get("domain"),
        "platform_recipient_ids": [str(rid) for rid in entry.get("instagramRecipientIds", [])],
        "config": config,
    }


def sync(path: Path, dry_run: bool = False) -> int:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries = data.get("clients", [])
    default_id = data.get("defaultClientId")
    if default_id and default_id not in {entry.get("id") for entry in entries}:
        print(f"defaultClientId '{default_id}' is not defined in clients", file=sys.stderr)

    rows = [build_row(entry, path.parent) for entry in entries]
    if dry_run:
        for row in rows:
            print(f"[dry-run] {row['id']}: status={row['status']} domain={row['domain']}")
        return len(rows)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        for row in rows:
            client = db.get(Client, row["id"])
            if client is None:
                client = Client(created_at=now, **row)
                db.add(client)
                print(f"Created {row['id']}")
            else:
                for key, value in row.items():
                    setattr(client, key, value)
                print(f"Updated {row['id']}")
        db.commit()
    finally:
        db.close()

    if default_id:
        print(f"Set DEFAULT_TENANT_ID={default_id} to prefer it as the fallback tenant")
    return len(rows)


def main():
    parser = argparse.ArgumentParser(description="Sync tenants into the clients table")
    parser.add_argument("clients_file", type=Path)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    try:
        count = sync(args.clients_file, dry_run=args.dry_run)
    except (OSError, ValueError, KeyError, ValidationError) as e:
        print(f"Sync failed: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Done: {count} clients")


if __name__ == "__main__":
    main()
