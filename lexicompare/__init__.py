"""Master-file term extraction and cross-document term matching."""
