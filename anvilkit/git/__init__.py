from .worktree import GitWorkTree

__all__ = ["GitWorkTree"]
