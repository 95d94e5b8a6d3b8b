"""
esexport - Parallel sliced-scroll exporter for Elasticsearch.

A CLI tool that drives one scroll cursor per slice of a query concurrently,
streams every hit to a JSON-lines file and reports aggregate progress.
"""

__version__ = "0.1.0"
__app_name__ = "esexport"
