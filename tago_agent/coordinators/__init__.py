"""Coordinators for the TAGO.io telemetry agent."""
