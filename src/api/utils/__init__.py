from .executors import ConversionExecutor, run_sync

__all__ = ["ConversionExecutor", "run_sync"]
