"""Concatenate the files of a remote GitHub repository into a single text file."""

__version__ = "0.0.1"
