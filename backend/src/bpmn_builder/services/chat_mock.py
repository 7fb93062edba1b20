"""Mock chat backend for running without an AI gateway.

Produces canned BPMN-designer replies as a chat completion event stream, so
the relay and the client can be exercised end to end offline.
"""

import asyncio
import logging
import re
from typing import AsyncIterator

import httpx

from models import ChatMessage, ChatRequest

from bpmn_builder.sse import CompletionChunkEncoder

logger = logging.getLogger(__name__)

# Pattern detection for different intents
DIAGRAM_PATTERNS = [
    r"\b(create|build|generate|design|draw|model|make)\b.*\b(workflow|process|diagram|bpmn|flow)\b",
    r"\b(workflow|process)\b.*\b(for|where|when|with)\b",
    r"\b(go ahead|generate it|yes|proceed)\b",
]

GREETING_PATTERNS = [
    r"^(hi|hello|hey|greetings|good\s+(morning|afternoon|evening))[\s!.,]*$",
]

MOCK_PROCESS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL"
                  xmlns:bpmndi="http://www.omg.org/spec/BPMN/20100524/DI"
                  xmlns:dc="http://www.omg.org/spec/DD/20100524/DC"
                  xmlns:di="http://www.omg.org/spec/DD/20100524/DI"
                  xmlns:camunda="http://camunda.org/schema/1.0/bpmn"
                  id="Definitions_1"
                  targetNamespace="http://bpmn.io/schema/bpmn">
  <bpmn:process id="Process_1" name="{name}" isExecutable="true">
    <bpmn:startEvent id="StartEvent_1" name="Request received">
      <bpmn:outgoing>Flow_1</bpmn:outgoing>
    </bpmn:startEvent>
    <bpmn:userTask id="Task_Review" name="Review request" camunda:assignee="reviewer">
      <bpmn:incoming>Flow_1</bpmn:incoming>
      <bpmn:outgoing>Flow_2</bpmn:outgoing>
    </bpmn:userTask>
    <bpmn:endEvent id="EndEvent_1" name="Request handled">
      <bpmn:incoming>Flow_2</bpmn:incoming>
    </bpmn:endEvent>
    <bpmn:sequenceFlow id="Flow_1" sourceRef="StartEvent_1" targetRef="Task_Review" />
    <bpmn:sequenceFlow id="Flow_2" sourceRef="Task_Review" targetRef="EndEvent_1" />
  </bpmn:process>
  <bpmndi:BPMNDiagram id="BPMNDiagram_1">
    <bpmndi:BPMNPlane id="BPMNPlane_1" bpmnElement="Process_1">
      <bpmndi:BPMNShape id="StartEvent_1_di" bpmnElement="StartEvent_1">
        <dc:Bounds x="152" y="102" width="36" height="36" />
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="Task_Review_di" bpmnElement="Task_Review">
        <dc:Bounds x="240" y="80" width="100" height="80" />
      </bpmndi:BPMNShape>
      <bpmndi:BPMNShape id="EndEvent_1_di" bpmnElement="EndEvent_1">
        <dc:Bounds x="392" y="102" width="36" height="36" />
      </bpmndi:BPMNShape>
      <bpmndi:BPMNEdge id="Flow_1_di" bpmnElement="Flow_1">
        <di:waypoint x="188" y="120" />
        <di:waypoint x="240" y="120" />
      </bpmndi:BPMNEdge>
      <bpmndi:BPMNEdge id="Flow_2_di" bpmnElement="Flow_2">
        <di:waypoint x="340" y="120" />
        <di:waypoint x="392" y="120" />
      </bpmndi:BPMNEdge>
    </bpmndi:BPMNPlane>
  </bpmndi:BPMNDiagram>
</bpmn:definitions>"""


def detect_intent(prompt: str) -> str:
    """Detect user intent from prompt."""
    lower_prompt = prompt.lower().strip()

    for pattern in GREETING_PATTERNS:
        if re.search(pattern, lower_prompt, re.IGNORECASE):
            return "greeting"

    for pattern in DIAGRAM_PATTERNS:
        if re.search(pattern, lower_prompt, re.IGNORECASE):
            return "diagram"

    return "general"


def mock_reply(messages: list[ChatMessage]) -> str:
    """Canned assistant reply for the latest user message."""
    prompt = next((m.content for m in reversed(messages) if m.role == "user"), "")
    intent = detect_intent(prompt)
    logger.info(f"Mock backend: detected intent '{intent}' from prompt")

    if intent == "greeting":
        return (
            "Hello! Describe the business process you want to model and I'll "
            "turn it into a BPMN workflow."
        )

    if intent == "diagram":
        name = prompt[:60].replace('"', "'").replace("<", "").replace("&", "and")
        xml = MOCK_PROCESS_XML.replace("{name}", name)
        return (
            "Here is a first version of the workflow. It starts when a request "
            "arrives, routes it to a reviewer and ends once it is handled.\n\n"
            f"```xml\n{xml}\n```\n\n"
            "Tell me which participants or decisions I should add."
        )

    truncated = prompt[:100] + "..." if len(prompt) > 100 else prompt
    return (
        f"To model \"{truncated}\" I need a bit more detail: who takes part, "
        "which tasks they perform and where decisions are made?"
    )


async def stream_mock_reply(
    messages: list[ChatMessage],
    chunk_size: int = 24,
    delay: float = 0.0,
) -> AsyncIterator[str]:
    """Yield a canned reply as encoded chat completion events."""
    encoder = CompletionChunkEncoder()
    reply = mock_reply(messages)

    for start in range(0, len(reply), chunk_size):
        yield encoder.delta(reply[start : start + chunk_size]).encode()
        if delay:
            await asyncio.sleep(delay)

    yield encoder.finish().encode()
    yield encoder.done().encode()


def create_mock_transport(chunk_size: int = 24) -> httpx.MockTransport:
    """An httpx transport answering chat requests with mock event streams."""

    async def handler(request: httpx.Request) -> httpx.Response:
        body = ChatRequest.model_validate_json(request.content)

        async def stream() -> AsyncIterator[bytes]:
            async for event in stream_mock_reply(body.messages, chunk_size=chunk_size):
                yield event.encode("utf-8")

        return httpx.Response(
            200,
            headers={"Content-Type": "text/event-stream"},
            content=stream(),
        )

    return httpx.MockTransport(handler)
