from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>snpcore Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    td.num { text-align: right; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>snpcore Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Reference</th><td><code>{{ reference }}</code></td></tr>
      <tr><th>Samples</th><td>{{ samples|length }}</td></tr>
      <tr><th>Reference column</th><td>{{ "included" if include_reference else "excluded" }}</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Sites</h3>
    <table>
      <tr><th>Variant sites (n-way)</th><td class="num">{{ sites.total }}</td></tr>
      <tr><th>Core SNPs</th><td class="num">{{ sites.core }}</td></tr>
      <tr><th>Non-core</th><td class="num">{{ sites.total - sites.core }}</td></tr>
    </table>
  </div>
</div>

<h2>Samples</h2>
<table>
  <tr>
    <th>ID</th><th>Variants</th><th>Bases affected</th><th>Skipped</th>
    <th>Aligned bases</th><th>% aligned</th>
  </tr>
  {% for s in samples %}
  <tr>
    <td><code>{{ s.id }}</code></td>
    <td class="num">{{ s.variants }}</td>
    <td class="num">{{ s.bases_affected }}</td>
    <td class="num">{{ s.skipped }}</td>
    <td class="num">{{ s.aligned_bases }}</td>
    <td class="num">{{ "%.2f"|format(s.percent_aligned) }}</td>
  </tr>
  {% endfor %}
</table>

{% if plots %}
<h2>Plots</h2>
<div class="grid">
  {% if plots.coverage %}
  <div class="card">
    <h3>Coverage</h3>
    <img src="{{ plots.coverage }}" alt="coverage per sample">
  </div>
  {% endif %}
  {% if plots.tree %}
  <div class="card">
    <h3>Core SNP tree</h3>
    <img src="{{ plots.tree }}" alt="neighbor-joining tree">
  </div>
  {% endif %}
</div>
{% endif %}

<h2>Outputs</h2>
<ul>
  {% for name, path in outputs.items() %}
  <li><code>{{ path }}</code> ({{ name }})</li>
  {% endfor %}
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>A core SNP is resolved in every sample and not identical across all of them.</li>
  <li>Samples with low aligned-base percentages reduce the number of core sites for everyone.</li>
  <li>Insertions, deletions and length-changing complex calls are not represented.</li>
</ul>

<hr>
<p class="small">snpcore {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    out_path: str | Path,
    version: str,
    summary: Dict[str, Any],
    plots: Optional[Dict[str, str]] = None,
) -> Path:
    """Render the HTML run report from the run summary dict produced by ``run_core``."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        reference=summary.get("reference"),
        include_reference=summary.get("include_reference", True),
        samples=summary.get("samples", []),
        sites=summary.get("sites", {"total": 0, "core": 0}),
        outputs=summary.get("outputs", {}),
        plots=plots or {},
    )
    out_path.write_text(html, encoding="utf-8")
    return out_path
