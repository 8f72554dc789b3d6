from support_bot.conversation.guardrails import GuardrailPipeline
from support_bot.conversation.parameters import EntityScope, merge_parameters
from support_bot.conversation.state_machine import (
    AddressChangeState,
    AddressChangeStateMachine,
    AddressChangeTrigger,
)

__all__ = [
    "AddressChangeStateMachine",
    "AddressChangeState",
    "AddressChangeTrigger",
    "EntityScope",
    "merge_parameters",
    "GuardrailPipeline",
]
