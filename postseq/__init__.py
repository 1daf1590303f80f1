# File: postseq/__init__.py
# Location: postseq/postseq/__init__.py

"""
postseq Package.

This package provides the post-sequencing steps of a lane analysis:
turning an aligned SAM file into a final, duplicate-marked BAM through a
fixed sequence of external tools, and computing per-read quality metrics
such as the distribution of undetermined ("N") bases per base position.
"""

from .version import __version__
