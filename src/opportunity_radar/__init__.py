"""Opportunity Radar - surface micro SaaS opportunities from public discussion feeds."""

__version__ = "0.1.0"
