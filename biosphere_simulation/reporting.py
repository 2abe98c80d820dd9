from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)

STATUS_COLOURS = {
    "Healthy": "#59a14f",
    "Warning": "#edc948",
    "Danger": "#f28e2b",
    "Critical": "#e15759",
}


class ReportGenerator:
    def __init__(self, db_path: Path, output_dir: Path) -> None:
        self.db_path = Path(db_path)
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / "charts").mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------ #
    def load_data(self):
        conn = sqlite3.connect(self.db_path)
        cur = conn.cursor()
        cur.execute("SELECT * FROM snapshots ORDER BY tick ASC")
        snap_rows = cur.fetchall()
        snap_cols = [d[0] for d in cur.description]

        cur.execute("SELECT cause, kind, age FROM deaths")
        deaths = cur.fetchall()

        cur.execute("SELECT tick, previous, current FROM status_events ORDER BY tick ASC")
        status_events = cur.fetchall()

        cur.execute("SELECT * FROM run_meta")
        run_meta = cur.fetchone()
        meta_cols = [d[0] for d in cur.description]
        conn.close()

        snapshots = [dict(zip(snap_cols, row)) for row in snap_rows]
        meta = dict(zip(meta_cols, run_meta)) if run_meta else {}
        return snapshots, deaths, status_events, meta

    # ------------------------------------------------------------------ #
    def plot_atmosphere(self, snapshots, status_events):
        if not snapshots:
            return None
        ticks = [s["tick"] for s in snapshots]
        o2 = [s["o2_percent"] for s in snapshots]
        co2 = [s["co2_percent"] for s in snapshots]

        fig, ax_o2 = plt.subplots(figsize=(8, 4))
        ax_o2.plot(ticks, o2, label="O2 %", color="#4e79a7")
        ax_o2.set_xlabel("Tick")
        ax_o2.set_ylabel("O2 (%)")

        ax_co2 = ax_o2.twinx()
        ax_co2.plot(ticks, co2, label="CO2 %", color="#e15759")
        ax_co2.set_ylabel("CO2 (%)")

        for tick, _previous, current in status_events:
            ax_o2.axvline(tick, color=STATUS_COLOURS.get(current, "grey"), linestyle="--", alpha=0.6)

        lines = ax_o2.get_lines()[:1] + ax_co2.get_lines()
        ax_o2.legend(lines, [line.get_label() for line in lines], loc="upper right")
        path = self.output_dir / "charts" / "atmosphere.png"
        fig.tight_layout()
        fig.savefig(path)
        plt.close(fig)
        return path

    def plot_population(self, snapshots):
        if not snapshots:
            return None
        ticks = [s["tick"] for s in snapshots]
        births = [s.get("births", 0) for s in snapshots]
        deaths = [s.get("deaths", 0) for s in snapshots]

        fig, ax = plt.subplots(figsize=(8, 4))
        for key, colour in (
            ("trees", "#59a14f"),
            ("grass", "#8cd17d"),
            ("herbivores", "#f28e2b"),
            ("carnivores", "#b07aa1"),
        ):
            ax.plot(ticks, [s[key] for s in snapshots], label=key.title(), color=colour)
        ax.bar(ticks, births, label="Births", alpha=0.3, color="#4e79a7")
        ax.bar(ticks, [-d for d in deaths], label="Deaths", alpha=0.3, color="#e15759")
        ax.set_xlabel("Tick")
        ax.set_ylabel("Count")
        ax.legend()
        path = self.output_dir / "charts" / "population.png"
        fig.tight_layout()
        fig.savefig(path)
        plt.close(fig)
        return path

    def plot_death_causes(self, deaths):
        if not deaths:
            return None
        cause_counts = {}
        for cause, kind, _age in deaths:
            label = f"{kind}: {cause}"
            cause_counts[label] = cause_counts.get(label, 0) + 1

        labels = list(cause_counts)
        sizes = [cause_counts[c] for c in labels]

        fig, ax = plt.subplots(figsize=(6, 6))
        ax.pie(sizes, labels=labels, autopct="%1.0f%%")
        ax.set_title("Deaths by cause")
        path = self.output_dir / "charts" / "death_causes.png"
        fig.savefig(path)
        plt.close(fig)
        return path

    def write_html(self, meta, charts, status_events=()):
        html_path = self.output_dir / "summary.html"
        parts = ["<html><head><title>Biosphere Telemetry Report</title></head><body>"]
        parts.append("<h1>Run summary</h1>")
        parts.append("<ul>")
        for key, value in meta.items():
            parts.append(f"<li><b>{key}</b>: {value}</li>")
        parts.append("</ul>")

        if status_events:
            parts.append("<h2>Atmosphere status changes</h2><ul>")
            for tick, previous, current in status_events:
                parts.append(f"<li>tick {tick}: {previous} &rarr; {current}</li>")
            parts.append("</ul>")

        for title, path in charts:
            if path is None:
                continue
            rel = Path("charts") / Path(path).name
            parts.append(f"<h2>{title}</h2><img src='{rel.as_posix()}' alt='{title}' style='max-width: 100%;'>")

        parts.append("</body></html>")
        html_path.write_text("\n".join(parts), encoding="utf-8")
        return html_path

    def generate(self):
        snapshots, deaths, status_events, meta = self.load_data()
        charts = [
            ("Atmosphere composition", self.plot_atmosphere(snapshots, status_events)),
            ("Population over time", self.plot_population(snapshots)),
            ("Deaths by cause", self.plot_death_causes(deaths)),
        ]
        path = self.write_html(meta, charts, status_events)
        logger.info("Report written to %s", path)
        return path


def generate_report(db_path: Path, output_dir: Path) -> Path:
    generator = ReportGenerator(db_path, output_dir)
    return generator.generate()


__all__ = ["generate_report", "ReportGenerator"]
