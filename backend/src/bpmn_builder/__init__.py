"""Conversational BPMN workflow builder: streaming chat client and workflow state."""

__version__ = "0.1.0"
