"""mdox: doxygen input filter for MATLAB classdef files."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mdox")
except PackageNotFoundError:
    __version__ = "dev"
