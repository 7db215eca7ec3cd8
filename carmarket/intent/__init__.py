"""Natural-language intent mapping.

The intent layer converts a free-text English car search ("BMW SUV under 50k") into a partial,
validated `ParsedFilters` object plus a confidence score, which the client merges into its filter
state.
"""
