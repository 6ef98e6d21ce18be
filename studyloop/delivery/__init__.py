"""Terminal presentation: themed panels, prompts and toasts."""
from .toast import Toast, ToastCenter

__all__ = ["Toast", "ToastCenter"]
