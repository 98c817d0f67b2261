"""Turtle graphics applications: console, window and command-line runner."""
