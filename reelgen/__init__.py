"""ReelGen: image to narrated, captioned short video"""

__version__ = "1.0.0"
