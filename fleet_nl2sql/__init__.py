"""Fleet NL2SQL: natural-language queries over a synthetic logistics dataset."""

__version__ = "0.1.0"
