from agentwatch.models.agent import AgentInfo, AgentState, ToolActivity
from agentwatch.models.host import SessionHost

__all__ = ["AgentInfo", "AgentState", "ToolActivity", "SessionHost"]
