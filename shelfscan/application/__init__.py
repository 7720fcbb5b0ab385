"""Workflow orchestration between pure receipt logic and runtime services."""
