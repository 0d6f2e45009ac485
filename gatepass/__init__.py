"""Gatepass: visitor management for residential societies."""
