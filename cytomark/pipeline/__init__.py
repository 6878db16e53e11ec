"""
Pipeline module for CytoMark.

Contains the CytokinePipeline class that orchestrates the full analysis.
"""

from .auto_pipeline import CytokinePipeline, PipelineResult

__all__ = ['CytokinePipeline', 'PipelineResult']
