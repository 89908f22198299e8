#!/usr/bin/env python3
"""
Create a published event with attendance enabled, for local testing.

Events are normally managed by the website's content side; this script
only exists so the attendance API has something to register against.

Usage:
    python scripts/create_event.py "Title" [--capacity N] [--waitlist]
        [--waitlist-max N] [--auto-promote] [--password PW] [--host EMAIL]
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from attendance.core.database import create_db_and_tables, engine
from attendance.core.security import hash_password
from attendance.models import Event


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Create a published event")
    parser.add_argument("title")
    parser.add_argument("--capacity", type=int, default=None)
    parser.add_argument("--waitlist", action="store_true", help="Enable the waitlist")
    parser.add_argument("--waitlist-max", type=int, default=None)
    parser.add_argument("--auto-promote", action="store_true")
    parser.add_argument("--password", default=None, help="Require this attendance password")
    parser.add_argument("--host", default=None, help="Host email for the host dashboard")
    args = parser.parse_args(argv)

    create_db_and_tables()

    with Session(engine) as session:
        event = Event(
            title=args.title,
            published=True,
            attendance_enabled=True,
            attendance_password_hash=hash_password(args.password) if args.password else None,
            capacity=args.capacity,
            waitlist_enabled=args.waitlist,
            waitlist_max_size=args.waitlist_max,
            waitlist_auto_promote=args.auto_promote,
            host_email=args.host,
        )
        session.add(event)
        session.commit()
        session.refresh(event)

        print(f"Created event '{event.title}'")
        print(f"  ID: {event.id}")
        print(f"  Capacity: {event.capacity or 'unlimited'}")
        print(f"  Waitlist: {'on' if event.waitlist_enabled else 'off'}")


if __name__ == "__main__":
    main()
