"""
qrcpack: Pack resource files into an embeddable Python module.

This tool resolves files, directories and Qt resource-collection manifests into
a single self-describing bundle:
- A flat mapping of slash-separated labels to file contents
- A generated module (qrc.py) that loads the bundle at import time
- An optional repack mode that rebuilds the bundle from disk during development
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
