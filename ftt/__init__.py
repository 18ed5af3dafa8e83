"""ftt - Filesystem Time Travel.

Point-in-time snapshots of a directory tree with deduplicated content,
diffs between snapshots, and rewind to any recorded snapshot.
"""

__version__ = "1.0.0"
