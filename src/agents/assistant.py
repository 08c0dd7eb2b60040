"""
Finance assistant

CRITICAL BOUNDARIES:

1. QUESTIONS ABOUT DATA (ask):
   - The LLM ONLY converts the question to a QueryIntent (JSON)
   - The QueryExecutor answers it from the Ledger
   - The LLM ONLY phrases the answer FROM the QueryResult
   - If no data matches, the reply says so without asking the LLM

2. OPEN-ENDED ADVICE (advise):
   - The LLM receives the ledger data as a context block, with every
     amount already computed, plus the mode's system instruction

The LLM is a TRANSLATOR, not an ORACLE. When no provider is configured
or a provider fails, questions about data still work: the keyword parser
builds the query and the reply is formatted without the LLM.
"""

import json
from datetime import date
from typing import Optional

import structlog
from pydantic import BaseModel, ValidationError

from src.ai import (
    AIProviderError,
    AllProvidersFailedError,
    AIRouter,
    format_expense_context,
    format_investment_context,
    system_instruction,
    with_context,
)
from src.ai.prompts import ANSWER_INSTRUCTION, QUERY_INSTRUCTION
from src.config import get_settings
from src.models.ledger import ChatMessage, Ledger
from src.models.query import QueryResult, StructuredQuery
from src.queries import KeywordQueryParser, QueryExecutor
from src.queries.parser import QueryIntent, intent_to_query
from src.services.storage import LedgerStorageInterface
from src.utils.formatters import format_currency

logger = structlog.get_logger("assistant")

MODES = ("default", "expenses", "investments")


class AssistantReply(BaseModel):
    text: str
    provider: Optional[str] = None
    query: Optional[StructuredQuery] = None
    result: Optional[QueryResult] = None

    @property
    def used_ai(self) -> bool:
        return self.provider is not None


def _extract_json(text: str) -> dict:
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in response")
    return json.loads(text[start:end])


class FinanceAssistant:
    def __init__(
        self,
        ledger: Ledger,
        storage: LedgerStorageInterface,
        router: AIRouter,
        executor: QueryExecutor,
        parser: Optional[KeywordQueryParser] = None,
        history_limit: Optional[int] = None,
    ):
        self._ledger = ledger
        self._storage = storage
        self._router = router
        self._executor = executor
        self._parser = parser or KeywordQueryParser()
        self._history_limit = (
            history_limit if history_limit is not None else get_settings().app.chat_history_limit
        )

    # =========================================================================
    # QUESTIONS ABOUT DATA
    # =========================================================================

    async def ask(self, question: str, mode: str = "expenses", today: Optional[date] = None) -> AssistantReply:
        """Answer a question from the ledger through a StructuredQuery."""
        target = mode if mode in ("expenses", "investments") else None
        query, parse_provider = await self.parse_question(question, target, today)
        result = self._executor.execute(query, parse_provider)
        text, answer_provider = await self.generate_response(query, result)
        reply = AssistantReply(
            text=text,
            provider=answer_provider or parse_provider,
            query=query,
            result=result,
        )
        self._remember(question, reply)
        return reply

    async def parse_question(
        self,
        question: str,
        target: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[StructuredQuery, Optional[str]]:
        """(query, provider that parsed it or None for the keyword parser)."""
        if self._router.is_configured():
            prompt = self._intent_prompt(question, target)
            try:
                reply = await self._router.call(prompt, QUERY_INSTRUCTION)
                intent = QueryIntent(**_extract_json(reply.text))
                if target:
                    intent.target = target
                return intent_to_query(intent, question, today), reply.provider
            except (AIProviderError, AllProvidersFailedError) as e:
                logger.warning("intent_parse_provider_failed", error=str(e))
            except (ValueError, TypeError, ValidationError) as e:
                logger.warning("intent_parse_invalid", error=str(e))
        return self._parser.parse(question, target, today), None

    @staticmethod
    def _intent_prompt(question: str, target: Optional[str]) -> str:
        return f"""Question: "{question}"

Extract the intent as a JSON object with these fields:
- target: "expenses" or "investments"{f' (use "{target}")' if target else ""}
- category: expense category if mentioned (Food & Dining, Shopping, Transportation,
  Entertainment, Bills & Utilities, Healthcare, Travel, Education, Groceries, Other, emi)
- investment_type: SHARES, GOLD, EPF or FD if mentioned
- goal: SHORT_TERM or LONG_TERM if mentioned
- search: a specific name or title mentioned (e.g. "Swiggy", "HDFC")
- time_reference: "this month", "last month", "last 6 months", "this year", "last year",
  a month name, or a year
- aggregation: sum, count, average, group or none
- group_by: category, month or year for expenses; type, goal, currency, month or year
  for investments
- include_loan_emis: false only if the user excludes loan EMIs

Examples:
"How much did I spend on groceries this year?" ->
{{"target": "expenses", "category": "Groceries", "time_reference": "this year", "aggregation": "sum"}}

"Show my portfolio split by type" ->
{{"target": "investments", "aggregation": "group", "group_by": "type"}}"""

    async def generate_response(self, query: StructuredQuery, result: QueryResult) -> tuple[str, Optional[str]]:
        """
        (reply text, provider). The provider is None when the reply was
        formatted without the LLM.
        """
        if not result.data_found:
            return (
                f"I don't have any records matching your question. ({result.query_description})",
                None,
            )

        data = self.summarize_result(result)
        if not self._router.is_configured():
            return f"Based on your records: {data}", None

        prompt = f"""Original question: "{query.original_question}"

Query performed: {result.query_description}

Results found: {result.result_count}

Data:
{data}"""
        try:
            reply = await self._router.call(prompt, ANSWER_INSTRUCTION)
        except (AIProviderError, AllProvidersFailedError) as e:
            logger.warning("answer_provider_failed", error=str(e))
            return f"Based on your records: {data}", None
        return reply.text, reply.provider

    @staticmethod
    def summarize_result(result: QueryResult) -> str:
        """Plain-text rendering of a QueryResult."""
        lines = []
        agg = result.aggregation_result or {}
        if "total_amount" in agg:
            lines.append(f"Total: {format_currency(agg['total_amount'])} across {agg['count']} records")
        if "average_amount" in agg:
            lines.append(f"Average: {format_currency(agg['average_amount'])} across {agg['count']} records")
        if set(agg) == {"count"}:
            lines.append(f"Count: {agg['count']} records")
        for key, group in agg.get("breakdown", {}).items():
            lines.append(f"- {key}: {format_currency(group['total'])} ({group['count']})")
        if not agg:
            for row in result.results[:5]:
                label = row.get("title") or row.get("name")
                when = f" on {row['date']}" if row.get("date") else ""
                lines.append(f"- {label}: {format_currency(row['amount'])}{when}")
            if result.result_count > 5:
                lines.append(f"... and {result.result_count - 5} more")
        return "\n".join(lines)

    # =========================================================================
    # ADVICE & CHAT
    # =========================================================================

    def context_for(self, mode: str) -> str:
        if mode == "expenses":
            return format_expense_context(self._ledger.expenses)
        if mode == "investments":
            return format_investment_context(
                self._ledger.investments,
                self._ledger.exchange_rate.rate,
                self._ledger.gold_rate_per_gram,
                self._ledger.share_prices,
            )
        return ""

    async def advise(self, question: str, mode: str = "default") -> AssistantReply:
        """
        Open-ended question answered by the LLM over the mode's data.

        Raises:
            ProviderNotConfiguredError, AIProviderError, AllProvidersFailedError
        """
        prompt = with_context(question, self.context_for(mode))
        history = [(m.role, m.content) for m in self._ledger.chat_history[-10:]]
        reply = await self._router.call(prompt, system_instruction(mode), history)
        result = AssistantReply(text=reply.text, provider=reply.provider)
        self._remember(question, result)
        return result

    def _remember(self, question: str, reply: AssistantReply) -> None:
        self._ledger.chat_history.append(ChatMessage(role="user", content=question))
        self._ledger.chat_history.append(
            ChatMessage(role="assistant", content=reply.text, provider=reply.provider)
        )
        if len(self._ledger.chat_history) > self._history_limit:
            del self._ledger.chat_history[:-self._history_limit or None]
        self._storage.save(self._ledger)

    def clear_history(self) -> None:
        self._ledger.chat_history.clear()
        self._storage.save(self._ledger)
