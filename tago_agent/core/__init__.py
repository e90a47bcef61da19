"""Core connectivity components for the TAGO.io telemetry agent."""
