"""Engine module: view models that drive the home screen."""

from .home_view_model import HomeStatus, HomeStatusKind, HomeViewModel
from .home_context import HomeContext, build_home_context

__all__ = ['HomeStatus', 'HomeStatusKind', 'HomeViewModel', 'HomeContext', 'build_home_context']
