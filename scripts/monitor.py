"""Print a live-system report for the matching backend."""

from blip.core.db import SessionLocal
from blip.services.monitor import format_report, live_stats


def main() -> None:
    db = SessionLocal()
    try:
        print(format_report(live_stats(db)))
    finally:
        db.close()


if __name__ == "__main__":
    main()
