"""workspace-constraints - logic-programming policies for multi-package projects."""

__version__ = "0.1.0"
