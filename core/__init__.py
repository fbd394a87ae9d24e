"""Core infrastructure for the feed client: logging, settings, threading, network."""
