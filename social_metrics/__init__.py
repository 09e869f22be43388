"""social-metrics - merge Douyin, WeChat Channels and Xiaohongshu exports.

Reads per-platform spreadsheet/CSV exports, maps them onto one unified
schema, and derives summary and analytics views from the merged data.
"""

__version__ = "0.1.0"
