"""Command implementations for the asmdriver CLI."""
