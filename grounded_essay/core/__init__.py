from .workflow import AllowAllUsageGate, EssayWorkflow, UsageGate

__all__ = ['AllowAllUsageGate', 'EssayWorkflow', 'UsageGate']
