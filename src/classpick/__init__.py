"""Copy compiled class files that match a Java source tree."""

__version__ = "0.1.0"
