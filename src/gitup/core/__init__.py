"""Core branch synchronization engine for git-up."""
