"""Stage executors: one per stored stage of the wizard pipeline."""

from agent_wizard.stages.agents import ProposeExecutor, ProposeStageInput
from agent_wizard.stages.base import StageExecutor
from agent_wizard.stages.classify import ClassifyExecutor, ClassifyStageInput
from agent_wizard.stages.configure import ConfigureExecutor, ConfigureStageInput
from agent_wizard.stages.connections import ConnectExecutor, ConnectStageInput
from agent_wizard.stages.extract import ExtractExecutor, ExtractStageInput
from agent_wizard.stages.process_flow import ProcessFlowExecutor, ProcessFlowStageInput

__all__ = [
    "ClassifyExecutor",
    "ClassifyStageInput",
    "ConfigureExecutor",
    "ConfigureStageInput",
    "ConnectExecutor",
    "ConnectStageInput",
    "ExtractExecutor",
    "ExtractStageInput",
    "ProcessFlowExecutor",
    "ProcessFlowStageInput",
    "ProposeExecutor",
    "ProposeStageInput",
    "StageExecutor",
]
