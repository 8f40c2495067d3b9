"""sheetmd - export public Google Sheets tabs as Markdown tables."""

__version__ = "0.1.0"
