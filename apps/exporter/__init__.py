"""
Exporter App - Datadog Logs to CSV

Responsibilities:
- Validate the DD_* environment and build an immutable export configuration
- Page through the Logs Search API with an opaque cursor
- Sleep between pages to stay under the provider rate limit
- Stream each page into a quoted CSV file with a configurable column order

Output:
- <DD_OUTPUT> (default exported.csv): header row, then one row per log
- stdout: "downloaded N logs"
"""
