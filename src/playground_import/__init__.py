"""playground_import: turn a GitHub repository into an editable workspace."""

__version__ = "0.1.0"
