"""Development server entry point."""

from obsidian_metrics.runner import run

if __name__ == "__main__":
    run()
