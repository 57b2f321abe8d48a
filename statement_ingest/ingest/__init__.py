"""Statement parsing and the import batch pipeline."""
