"""Measurement services for the TAGO.io telemetry agent."""
