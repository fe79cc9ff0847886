"""Deploys Knowledge Exploration engine builds to Azure Cloud Services."""

__version__ = "0.1.0"
