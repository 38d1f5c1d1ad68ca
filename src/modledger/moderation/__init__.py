"""Discord embeds for case log entries and history summaries."""
