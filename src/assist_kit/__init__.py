"""assist-kit: provision AI-assistant tooling files from a declarative task catalog."""

__version__ = "1.0.0"
