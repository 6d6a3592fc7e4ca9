"""Build metadata; release tooling rewrites ``APP_VERSION``."""

APP_VERSION = "0.1.0"
