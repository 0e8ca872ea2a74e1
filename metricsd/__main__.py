"""
Entry point for running metricsd as a module.

Usage:
    python -m metricsd --config /etc/metricsd/config.toml
"""

from .cli import main

if __name__ == "__main__":
    main()
