"""findex: index file trees and search them by name."""

__version__ = "0.1.0"
