"""Executive summary of the dashboard counters."""

from cancheito.ai.flow import build_system_prompt, run_structured
from cancheito.ai.llm.base import LLMProvider
from cancheito.ai.schemas import AIResult, DashboardSummary, DashboardSummaryInput

_ROLE = (
    "You are a business analyst reporting to the administrators of Cancheito, "
    "a job-matching platform. From the platform counters you receive, write an "
    "executive summary, 3 to 4 key observations and 2 to 3 actionable "
    "recommendations."
)


def build_prompt(counters: DashboardSummaryInput) -> str:
    return (
        "Platform counters:\n"
        f"- Total users: {counters.total_users}\n"
        f"- New users in the last 30 days: {counters.new_users_last_30_days}\n"
        f"- Total job offers: {counters.total_offers}\n"
        f"- New job offers in the last 30 days: {counters.new_offers_last_30_days}\n"
        f"- Active offers: {counters.active_offers}\n"
        f"- Closed offers: {counters.closed_offers}\n"
    )


async def summarize_dashboard(
    counters: DashboardSummaryInput,
    provider: LLMProvider,
    *,
    model: str | None = None,
    language: str = "Spanish",
) -> AIResult[DashboardSummary]:
    return await run_structured(
        provider,
        build_prompt(counters),
        build_system_prompt(_ROLE, DashboardSummary, language),
        DashboardSummary,
        model=model,
        label="Dashboard summary",
    )
