"""
Shape finalized metric results for reporting.

Results are turned into pandas tables (written as TSV), an HTML summary
rendered from a jinja2 template, and optionally a PNG plot per metric when
matplotlib is installed.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .base import MetricResult, PlotSpec

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


def results_to_frame(results: Iterable[MetricResult]) -> pd.DataFrame:
    """Flatten the scalar facts of all results into metric/key/value rows."""
    rows = [
        {"metric": result.name, "key": key, "value": value}
        for result in results
        for key, value in result.facts.items()
    ]
    return pd.DataFrame(rows, columns=["metric", "key", "value"])


def series_to_frame(plot: PlotSpec) -> pd.DataFrame:
    """Return one column per series, indexed by 1-based base position.

    Series of different lengths are aligned on position; missing values
    are NaN.
    """
    columns = {
        label: pd.Series(
            [value for _, value in points], index=[pos for pos, _ in points], dtype=float
        )
        for label, points in plot.series.items()
    }
    frame = pd.DataFrame(columns)
    frame.index.name = "position"
    return frame


def write_metrics_summary(results: Iterable[MetricResult], output_file: Union[str, Path]) -> Path:
    """Write the scalar facts of all results as a TSV file."""
    output_file = Path(output_file)
    results_to_frame(results).to_csv(output_file, sep="\t", index=False)
    logger.info(f"Metrics summary written to {output_file}")
    return output_file


def write_series(plot: PlotSpec, output_file: Union[str, Path]) -> Path:
    """Write the per-position series of a plot as a TSV file."""
    output_file = Path(output_file)
    series_to_frame(plot).to_csv(output_file, sep="\t", float_format="%.6f")
    logger.info(f"Per-position series written to {output_file}")
    return output_file


def render_html_summary(
    results: Iterable[MetricResult],
    plot_files: Optional[Dict[str, str]] = None,
    title: str = "Sequence quality metrics",
) -> str:
    """Render an HTML page listing every metric's facts and plot.

    Parameters
    ----------
    results : Iterable[MetricResult]
        Finalized results
    plot_files : Dict[str, str], optional
        Metric name to plot file (relative to the HTML page)
    title : str
        Page title
    """
    plot_files = plot_files or {}
    metrics = [
        {
            "name": result.name,
            "facts": result.facts,
            "plot_file": plot_files.get(result.name),
            "plot_title": result.plot.title if result.plot else "",
        }
        for result in results
    ]
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(["html"])
    )
    template = env.get_template("metrics_summary.html")
    return template.render(
        title=title, metrics=metrics, generated=datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    )


def write_plot(plot: PlotSpec, output_dir: Union[str, Path]) -> bool:
    """Write a line plot of the series as PNG.

    Uses lazy import with matplotlib.use("Agg") for headless cluster nodes.

    Returns
    -------
    bool
        True if the plot was written, False if matplotlib is not installed
        or there is nothing to plot.
    """
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        logger.info("matplotlib not installed, plot skipped")
        return False

    if not any(plot.series.values()):
        logger.info(f"No data for '{plot.title}', plot skipped")
        return False

    fig, ax = plt.subplots(figsize=(8, 5))
    for label, points in plot.series.items():
        if points:
            ax.plot([p for p, _ in points], [v for _, v in points], label=label)

    ax.set_xlim(*plot.x_range)
    ax.set_ylim(*plot.y_range)
    ax.set_xlabel(plot.x_label)
    ax.set_ylabel(plot.y_label)
    ax.set_title(plot.title)
    ax.legend(fontsize=8, loc="upper right")
    fig.tight_layout()

    output_path = Path(output_dir) / plot.file_name
    plt.savefig(str(output_path), dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Plot written to {output_path}")
    return True


def write_report(
    results: List[MetricResult], output_dir: Union[str, Path], prefix: str, plot: bool = True
) -> Dict[str, Path]:
    """Write the summary TSV, per-metric series TSVs, plots and HTML page.

    Returns
    -------
    Dict[str, Path]
        Report type to written path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = {"summary": write_metrics_summary(results, output_dir / f"{prefix}_summary.tsv")}

    plot_files: Dict[str, str] = {}
    for result in results:
        if result.plot is None:
            continue
        written[f"{result.name}_series"] = write_series(
            result.plot, output_dir / f"{prefix}_{result.name}.tsv"
        )
        if plot and write_plot(result.plot, output_dir):
            plot_files[result.name] = result.plot.file_name
            written[f"{result.name}_plot"] = output_dir / result.plot.file_name

    html_path = output_dir / f"{prefix}_summary.html"
    html_path.write_text(render_html_summary(results, plot_files), encoding="utf-8")
    written["html"] = html_path
    logger.info(f"HTML summary written to {html_path}")
    return written
