"""Core: configuration, logging, exceptions and interfaces."""
