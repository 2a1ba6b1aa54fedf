"""
Content module: pages and templates in draft/live views.

- Pages live in a "draft" view (latest edits) and a "live" view (published snapshot)
- Region and include order is carried by position columns and kept end to end
- Publishing copies a draft page over its live counterpart
"""
