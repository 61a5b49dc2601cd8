"""Block-level synchronization of extracted page content into Notion."""

__version__ = "0.1.0"
