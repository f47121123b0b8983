from .app import App, RunOptions, format_plan, run_main

__all__ = ["App", "RunOptions", "format_plan", "run_main"]
