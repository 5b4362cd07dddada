from .termination import TerminationGuard

__all__ = ["TerminationGuard"]
