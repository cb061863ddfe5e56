"""
OmniGen Studio 模块包初始化
"""

from .main_ui import create_studio_ui, main

__all__ = ['create_studio_ui', 'main']
