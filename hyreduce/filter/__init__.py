"""
Sampling filters applied to rasters before statistics are estimated.
"""

from .sample import sample, check_fraction
