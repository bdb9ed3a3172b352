"""Starting chart of accounts for a new company."""

import structlog

from transactwise.errors import InputError
from transactwise.models import ChartOfAccount, SuggestedAccount
from transactwise.prompts import STARTING_COA_SYSTEM_PROMPT, SUBMIT_CHART_OF_ACCOUNTS_TOOL
from transactwise.reasoning import ReasoningService, StartingChartResponse
from transactwise.store.documents import new_document_id

logger = structlog.get_logger(__name__)


class ChartOfAccountsGenerator:
    """Asks the reasoning service for an industry-appropriate starting chart."""

    def __init__(self, reasoning: ReasoningService):
        self._reasoning = reasoning

    async def suggest(self, industry: str) -> list[SuggestedAccount]:
        """Suggest accounts for ``industry``; duplicate names are collapsed.

        Raises:
            InputError: ``industry`` is blank.
            ReasoningServiceError: The service failed or answered outside its schema.
        """
        industry = industry.strip()
        if not industry:
            raise InputError("An industry is required to suggest a chart of accounts")

        response = await self._reasoning.request(
            system_prompt=STARTING_COA_SYSTEM_PROMPT,
            title=f"Suggest a chart of accounts for a business in the {industry} industry.",
            payload={"industry": industry},
            tool=SUBMIT_CHART_OF_ACCOUNTS_TOOL,
            response_model=StartingChartResponse,
        )

        suggestions: list[SuggestedAccount] = []
        seen: set[str] = set()
        for item in response.accounts:
            name = item.account_name.strip()
            if name.casefold() in seen:
                continue
            seen.add(name.casefold())
            suggestions.append(
                SuggestedAccount(
                    account_name=name,
                    account_type=item.account_type.strip(),
                    account_description=item.account_description.strip(),
                )
            )

        logger.info("chart_of_accounts_suggested", industry=industry, accounts=len(suggestions))
        return suggestions


def to_chart_of_account(suggestion: SuggestedAccount, company_id: str) -> ChartOfAccount:
    """Turn a suggestion into a new account record with a fresh id."""
    return ChartOfAccount(
        id=new_document_id(),
        company_id=company_id,
        account_name=suggestion.account_name,
        account_type=suggestion.account_type,
        description=suggestion.account_description or None,
    )
