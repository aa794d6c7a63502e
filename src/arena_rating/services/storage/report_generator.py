"""Output generation for leaderboard Markdown, CSV and JSON artifacts."""

from __future__ import annotations

import asyncio
import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from arena_rating.services.leaderboard import LeaderboardEntry

logger = structlog.get_logger()

CSV_COLUMNS = [
    "rank",
    "key",
    "display_name",
    "rank_score",
    "rating",
    "rating_deviation",
    "confidence",
    "stability",
    "wins",
    "losses",
    "draws",
    "both_bad",
    "total_votes",
    "shown_count",
    "rank_delta_24h",
]


class ReportGenerator:
    """Generate and persist leaderboard output files."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir

    def _path(self, filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir / filename

    async def save_leaderboard(self, leaderboard: list[LeaderboardEntry]) -> list[Path]:
        """Save leaderboard to Markdown, CSV and JSON files.

        Returns:
            Paths of the written files.
        """

        def _save() -> list[Path]:
            md_path = self._path("leaderboard.md")
            with md_path.open("w", encoding="utf-8") as f:
                f.write("# Leaderboard\n\n")
                f.write(
                    "| Rank | Candidate | Score | Rating | RD | Confidence "
                    "| W | L | D | Both bad |\n"
                )
                f.write("|---|---|---|---|---|---|---|---|---|---|\n")
                for e in leaderboard:
                    f.write(
                        f"| {e.rank} | {e.display_name} | {e.rank_score:.1f} | {e.rating:.1f} | "
                        f"{e.rating_deviation:.1f} | {e.confidence}% | {e.wins} | {e.losses} | "
                        f"{e.draws} | {e.both_bad} |\n"
                    )

            csv_path = self._path("leaderboard.csv")
            with csv_path.open("w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(CSV_COLUMNS)
                for e in leaderboard:
                    data = e.model_dump()
                    writer.writerow(["" if data[c] is None else data[c] for c in CSV_COLUMNS])

            json_path = self._path("leaderboard.json")
            with json_path.open("w", encoding="utf-8") as f:
                json.dump([e.model_dump() for e in leaderboard], f, indent=2, default=str)

            return [md_path, csv_path, json_path]

        paths = await asyncio.to_thread(_save)
        logger.info(
            "leaderboard_exported", output_dir=str(self.output_dir), entries=len(leaderboard)
        )
        return paths
