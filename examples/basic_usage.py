#!/usr/bin/env python3
"""Basic usage examples for the batch-refactor library."""

import logging
import tempfile
from pathlib import Path

from batch_refactor import (
    FileBufferHost,
    InMemoryBufferHost,
    RefactorSession,
    performance_monitor,
    preserve_case,
)


def buffer_example():
    """Replace every whole-word match in the active buffer."""
    print("=== Buffer Scope Example ===")

    host = InMemoryBufferHost({"main.py": "userId = load(userId)\nuserIdList = []\n"})
    host.open("main.py")
    session = RefactorSession(host)

    result = session.refactor_buffer("userId", "accountId", "cw")
    print(f"Replacements: {result['total_replacements']}")
    print(host.text("main.py"))


def preserve_case_example():
    """Show the case heuristic on its own."""
    print("=== Preserve Case Example ===")

    for original in ["API", "Api", "api", "ApiClient"]:
        print(f"  {original!r:12} -> {preserve_case(original, 'service')!r}")


def batch_example():
    """Rewrite a location list spread over several files."""
    print("\n=== Batch Scope Example ===")

    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir)
        (root / "models.py").write_text("class Config:\n    pass\n")
        (root / "app.py").write_text("from models import Config\nconfig = Config()\n")

        host = FileBufferHost(root)
        session = RefactorSession(host)

        # Locations as a search tool would report them
        locations = [
            {"buffer_id": "app.py", "line_number": 2},
            {"buffer_id": "models.py", "line_number": 1},
            {"buffer_id": "app.py", "line_number": 1},
        ]
        result = session.refactor_locations(locations, "config", "settings", "wp")

        print(f"Strategy: {result['strategy_used']}")
        for entry in result["per_buffer"]:
            print(
                f"  {entry['display_name']}: {entry['succeeded']}/{entry['attempted']} lines"
            )
        print((root / "app.py").read_text())

    print(f"Timings: {performance_monitor.get_all_stats()}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    buffer_example()
    preserve_case_example()
    batch_example()

    print("\n=== All examples completed successfully! ===")
