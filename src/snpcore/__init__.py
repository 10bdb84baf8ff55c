"""snpcore: merge per-sample variant calls into a core-genome SNP alignment.

Public API is intentionally small; most users should use the CLI:

    snpcore merge sampleA/ sampleB/ sampleC/ --prefix core

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
