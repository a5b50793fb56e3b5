"""Pipeline execution modules for LeadScout."""

from .control import PipelineTrigger
from .runner import run_pipeline, build_trigger, PipelineResult

__all__ = ['PipelineTrigger', 'run_pipeline', 'build_trigger', 'PipelineResult']
