"""Terminal views: the Textual quiz app and the Rich report."""
