"""
Application Initialization
==========================
Builds the chart from a dataset and either renders it to a file or opens the
interactive window.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Loads the records and the chart settings.
2. Builds the forest and the layout engine (ChartLayout).
3. Hands the layout to a view: the static matplotlib renderer (--output) or
   the Qt window (default).
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

from lineagechart.config import DEFAULT_SETTINGS_PATH, SAMPLE_DATA_PATH
from lineagechart.controller.layout import ChartLayout
from lineagechart.logging_config import setup_logging
from lineagechart.model.forest import build_forest
from lineagechart.model.records import load_records
from lineagechart.model.settings import load_settings

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="lineagechart", description="Genealogy chart of models over time.")
    parser.add_argument("data", nargs="?", default=SAMPLE_DATA_PATH, help="CSV file with one row per model.")
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_PATH, help="Chart settings JSON.")
    parser.add_argument("--output", help="Render headless to this PNG/SVG file instead of opening a window.")
    parser.add_argument("--max-ticks", type=int, default=None, help="Tick cap for headless rendering.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)

    # 2. Build the Data Model
    settings = load_settings(args.settings)
    forest = build_forest(load_records(args.data))

    # 3. Build the Layout Engine
    chart = ChartLayout(forest, settings)

    # 4a. Headless: settle, then draw once
    if args.output:
        from lineagechart.view.static_chart import save_chart

        chart.run(args.max_ticks)
        save_chart(chart, args.output)
        return

    # 4b. Interactive: the window drives the frame loop
    from PySide6.QtWidgets import QApplication

    from lineagechart.view.chart_window import ChartWindow

    app = QApplication(sys.argv[:1])
    app.setApplicationName("Model Genealogy")

    window = ChartWindow(chart)
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
