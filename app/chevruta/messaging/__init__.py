"""Slack messaging pipeline -- events, context, formatting, routing, and dispatch."""
