"""SheetMatch - match spreadsheet rows by key, then update or audit a column."""

__version__ = "0.1.0"
