"""Test helpers: formatted failure messages, output buffers and matchers, subprocess sessions and builds, timeout and prefixing writers."""

__version__ = "0.1.0"