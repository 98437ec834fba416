"""Tool-calling loop that drives one AI analysis run."""

import json
import logging
from typing import Callable, List, Optional

from llm.base_client import BaseLLMClient, Message, ToolCall
from llm.errors import AnalysisCancelled, ProtocolError
from llm.transport import CancelToken
from schemas.analysis import ToolEvent, ToolPhase
from .tools import SearchWebTool

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[str], None]
ToolEventHandler = Callable[[ToolEvent], None]


class ToolLoop:
    """
    Bounded search-and-answer loop.

    Each round sends the transcript with the search_web tool declared. A
    reply without tool calls is the final answer. Otherwise every call is
    executed, its result appended to the transcript, and the next round
    starts. When the rounds run out the model is told to answer without
    tools; if even that comes back empty the prompt is re-sent as a plain
    streaming request.
    """

    MAX_TOOL_ROUNDS = 3

    SYSTEM_PROMPT = (
        "You can call search_web when necessary, but keep it minimal and efficient. "
        "Usually 1-2 searches are enough. As soon as you have enough information, "
        "stop calling tools and return the final answer."
    )

    FORCE_FINAL_PROMPT = (
        "Do not call any tools. Based on the information already gathered, "
        "provide your final answer immediately."
    )

    UNSUPPORTED_TOOL = "Unsupported tool call."
    MISSING_QUERY = "Missing query argument."

    def __init__(
        self,
        llm_client: BaseLLMClient,
        search_tool: SearchWebTool,
        max_rounds: int = MAX_TOOL_ROUNDS
    ):
        """
        Initialize loop.

        Args:
            llm_client: Chat client for every round
            search_tool: The only tool offered to the model
            max_rounds: Tool rounds before the answer is forced (default: 3)
        """
        self.llm_client = llm_client
        self.search_tool = search_tool
        self.max_rounds = max_rounds
        self.tool_definitions = [search_tool.get_definition()]

    def run(
        self,
        prompt: str,
        on_chunk: ChunkHandler,
        on_tool_event: ToolEventHandler,
        cancel_token: CancelToken
    ) -> None:
        """
        Run until the model produces an answer.

        Raises on any fatal error, including AnalysisCancelled.
        """
        messages = [
            Message(role="system", content=self.SYSTEM_PROMPT),
            Message(role="user", content=prompt),
        ]

        for round_index in range(self.max_rounds):
            logger.info(f"Tool round {round_index + 1}/{self.max_rounds}")

            response = self.llm_client.chat(
                messages=messages,
                tools=self.tool_definitions,
                cancel_token=cancel_token
            )
            cancel_token.raise_if_cancelled()

            if not response.tool_calls:
                logger.info(f"Final answer received in round {round_index + 1}")
                if response.content:
                    on_chunk(response.content)
                return

            messages.append(Message(
                role="assistant",
                content=response.content,
                tool_calls=response.tool_calls
            ))

            for tool_call in response.tool_calls:
                self._execute_call(tool_call, messages, on_tool_event, cancel_token)

            on_tool_event(ToolEvent(
                phase=ToolPhase.INFO,
                call_id=f"generating-{round_index}",
                tool="assistant",
                message="Generating answer from search results..."
            ))

        logger.warning("Tool round limit reached, forcing final answer")
        on_tool_event(ToolEvent(
            phase=ToolPhase.INFO,
            call_id="tool-round-limit",
            tool=self.search_tool.name,
            message="Search finished, generating final answer..."
        ))

        final_content = self._force_final_answer(messages, cancel_token)
        if final_content:
            on_chunk(final_content)
            return

        # Search context is dropped here: the first prompt is re-sent cold.
        logger.warning("Forced final answer was empty, falling back to plain streaming")
        self.llm_client.stream(prompt, on_chunk, cancel_token)

    def _execute_call(
        self,
        tool_call: ToolCall,
        messages: List[Message],
        on_tool_event: ToolEventHandler,
        cancel_token: CancelToken
    ):
        """Execute one tool call and append its result to the transcript."""
        if tool_call.name != self.search_tool.name:
            logger.warning(f"Model requested unsupported tool: {tool_call.name}")
            self._reject(tool_call, tool_call.name, self.UNSUPPORTED_TOOL, messages, on_tool_event)
            return

        query = self.search_tool.parse_query(tool_call.arguments)
        if not query:
            logger.warning(f"search_web call {tool_call.id} had no usable query")
            self._reject(tool_call, self.search_tool.name, self.MISSING_QUERY, messages, on_tool_event)
            return

        on_tool_event(ToolEvent(
            phase=ToolPhase.START,
            call_id=tool_call.id,
            tool=self.search_tool.name,
            query=query
        ))

        try:
            result = self.search_tool.execute(cancel_token=cancel_token, query=query)
        except AnalysisCancelled:
            raise
        except Exception as e:
            logger.error(f"search_web failed for '{query}': {e}")
            on_tool_event(ToolEvent(
                phase=ToolPhase.ERROR,
                call_id=tool_call.id,
                tool=self.search_tool.name,
                query=query,
                message=str(e) or "Tool execution failed."
            ))
            raise

        cancel_token.raise_if_cancelled()
        on_tool_event(ToolEvent(
            phase=ToolPhase.SUCCESS,
            call_id=tool_call.id,
            tool=self.search_tool.name,
            query=query,
            message=f"Found {len(result.results)} results."
        ))
        messages.append(Message(
            role="tool",
            tool_call_id=tool_call.id,
            content=json.dumps(result.model_dump(), ensure_ascii=False)
        ))

    @staticmethod
    def _reject(
        tool_call: ToolCall,
        tool_name: str,
        error: str,
        messages: List[Message],
        on_tool_event: ToolEventHandler
    ):
        on_tool_event(ToolEvent(
            phase=ToolPhase.ERROR,
            call_id=tool_call.id,
            tool=tool_name,
            message=error
        ))
        messages.append(Message(
            role="tool",
            tool_call_id=tool_call.id,
            content=json.dumps({"error": error})
        ))

    def _force_final_answer(self, messages: List[Message], cancel_token: CancelToken) -> str:
        """Ask once more with no tools declared. Returns "" if nothing usable came back."""
        final_messages = messages + [Message(role="user", content=self.FORCE_FINAL_PROMPT)]
        try:
            response = self.llm_client.chat(
                messages=final_messages,
                tools=None,
                cancel_token=cancel_token
            )
        except ProtocolError as e:
            logger.warning(f"Forced final answer unusable: {e}")
            return ""
        cancel_token.raise_if_cancelled()
        return response.content


def stream_analysis(
    llm_client: BaseLLMClient,
    prompt: str,
    on_chunk: ChunkHandler,
    on_done: Callable[[], None],
    on_error: Callable[[str], None],
    cancel_token: Optional[CancelToken] = None,
    on_tool_event: Optional[ToolEventHandler] = None,
    search_tool: Optional[SearchWebTool] = None
) -> None:
    """
    Run one analysis and report through callbacks.

    Plain streaming is used when no search tool is given, otherwise the
    bounded ToolLoop. Exactly one of on_done / on_error fires per run,
    and none of the callbacks fire once cancel_token is cancelled.
    """
    token = cancel_token or CancelToken()

    def emit_chunk(text: str):
        token.raise_if_cancelled()
        on_chunk(text)

    def emit_tool_event(event: ToolEvent):
        token.raise_if_cancelled()
        if on_tool_event:
            on_tool_event(event)

    try:
        if search_tool:
            ToolLoop(llm_client, search_tool).run(prompt, emit_chunk, emit_tool_event, token)
        else:
            llm_client.stream(prompt, emit_chunk, token)
        token.raise_if_cancelled()
    except AnalysisCancelled:
        logger.info("Analysis run cancelled")
        return
    except Exception as e:
        if token.cancelled:
            logger.info(f"Ignoring error from cancelled run: {e}")
            return
        logger.error(f"Analysis run failed: {e}")
        on_error(str(e) or e.__class__.__name__)
        return

    on_done()
