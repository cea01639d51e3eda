"""Consequence summary shown before an admin activates or suspends an account."""

from cancheito.ai.flow import build_system_prompt, run_structured
from cancheito.ai.llm.base import LLMProvider
from cancheito.ai.schemas import (
    AccountAction,
    AccountReasoningInput,
    AccountReasoningOutput,
    AIResult,
)

_ROLE = (
    "You assist the administrators of Cancheito, a job-matching platform that "
    "connects employers with applicants. An administrator is about to change "
    "the state of a user account. Explain briefly and clearly what the action "
    "means for this user and for the platform."
)


def build_prompt(request: AccountReasoningInput) -> str:
    state = "active" if request.account_state else "suspended"
    if request.action_type is AccountAction.ACTIVATE:
        consequence = (
            "Activating restores the user's access: they can sign in again and "
            "their offers or applications become visible."
        )
    else:
        consequence = (
            "Suspending blocks the user's access: they cannot sign in and their "
            "offers or applications stop being visible while suspended."
        )
    return (
        f"Action: {request.action_type.value}\n"
        f"User name: {request.user_name}\n"
        f"User email: {request.user_email}\n"
        f"User type: {request.user_type}\n"
        f"Current account state: {state}\n\n"
        f"{consequence}\n"
        "Summarize the consequences of this action in 2-3 sentences."
    )


async def reason_account_action(
    request: AccountReasoningInput,
    provider: LLMProvider,
    *,
    model: str | None = None,
    language: str = "Spanish",
) -> AIResult[AccountReasoningOutput]:
    """Ask the model for a consequence summary.

    A failed result must not block the action itself; callers offer to
    continue without the reasoning.
    """
    return await run_structured(
        provider,
        build_prompt(request),
        build_system_prompt(_ROLE, AccountReasoningOutput, language),
        AccountReasoningOutput,
        model=model,
        label=f"Account {request.action_type.value} reasoning",
    )
