"""Shared test doubles: a scripted generative service and an in-memory browser."""

import pytest

from core.context_store import ContextStore
from core.orchestrator import Orchestrator
from core.pattern_store import PatternStore
from utils.artifact_store import FileArtifactStore

_ROUTES = (
    ("Create a detailed implementation plan", "planner"),
    ("Create the code for one step", "generator"),
    ("Review this implementation", "reviewer"),
    ("Summarize what this feature pipeline run", "pattern_learner"),
)


class FakeLLM:
    """Answers each prompt by the template it was rendered from.

    A response may be a string, an exception to raise, a callable taking
    the prompt, or a list consumed one item per call.
    """

    def __init__(self, **responses):
        self.responses = responses
        self.calls = []

    def invoke(self, prompt):
        stage = next(name for prefix, name in _ROUTES if prompt.startswith(prefix))
        self.calls.append((stage, prompt))
        response = self.responses.get(stage, "")
        if isinstance(response, list):
            response = response.pop(0)
        if callable(response):
            response = response(prompt)
        if isinstance(response, Exception):
            raise response
        return response

    def count(self, stage):
        return sum(1 for name, _ in self.calls if name == stage)


class FakeElement:
    def __init__(self, visible=True):
        self.visible = visible


class FakeEngine:
    """Automation engine over a dict of selector -> text.

    on_click maps a selector to a callable that mutates the texts dict.
    """

    def __init__(self, texts=None, hidden=(), on_click=None, fail_open=None):
        self.texts = dict(texts or {})
        self.hidden = set(hidden)
        self.on_click = dict(on_click or {})
        self.fail_open = fail_open
        self.opened = []
        self.closed = 0

    def open_session(self, url):
        if self.fail_open is not None:
            raise self.fail_open
        self.opened.append(url)

    def find_element(self, selector):
        if selector not in self.texts:
            return None
        return FakeElement(visible=selector not in self.hidden)

    def is_visible(self, element):
        return element.visible

    def click(self, selector):
        if selector not in self.texts:
            raise RuntimeError(f"No element matches {selector}")
        handler = self.on_click.get(selector)
        if handler:
            handler(self.texts)

    def type(self, selector, value):
        if selector not in self.texts:
            raise RuntimeError(f"No element matches {selector}")
        self.texts[selector] = value

    def read_text(self, selector):
        return self.texts.get(selector, "")

    def close_session(self):
        self.closed += 1


def counter_engine():
    """A rendered counter: #count starts at 0, the buttons change it."""

    def bump(delta):
        def handler(texts):
            texts["#count"] = str(int(texts["#count"]) + delta)
        return handler

    def reset(texts):
        texts["#count"] = "0"

    return FakeEngine(
        texts={"#count": "0", "#increment": "+", "#decrement": "-", "#reset": "Reset"},
        on_click={"#increment": bump(1), "#decrement": bump(-1), "#reset": reset},
    )


def generation(code, explanation="Generated"):
    return (
        f"[CODE_START]\n{code}\n[CODE_END]\n"
        f"[EXPLANATION_START]\n{explanation}\n[EXPLANATION_END]"
    )


COUNTER_PLAN = """Here is the plan:
```json
{
  "analysis": {"feature": "Counter", "complexity": "low",
               "requirements": ["increment", "decrement", "reset"]},
  "steps": [
    {"id": 1, "description": "Counter component with three buttons",
     "purpose": "Render and update the count", "targetArtifacts": ["Counter.js"],
     "testRequirements": ["count starts at 0"]},
    {"id": 2, "description": "Counter styles", "purpose": "Layout",
     "targetArtifacts": ["Counter.css"]}
  ],
  "testCriteria": {
    "visual": [{"requirement": "Count is shown", "selector": "#count"}],
    "functional": [{"requirement": "Increment adds one", "steps": [
      {"action": "click", "selector": "#increment"},
      {"action": "check", "selector": "#count", "expectedValue": "1"}
    ]}]
  }
}
```"""

COUNTER_JS = """function Counter() {
  const [count, setCount] = useState(0);
  return (
    <div className="counter">
      <span id="count">{count}</span>
      <button id="increment" onClick={() => setCount(count + 1)}>+</button>
      <button id="decrement" onClick={() => setCount(count - 1)}>-</button>
      <button id="reset" onClick={() => setCount(0)}>Reset</button>
    </div>
  );
}

export default Counter;"""

COUNTER_CSS = """.counter {
  display: flex;
  gap: 8px;
}"""

NO_ISSUES = '{"issues": [], "patches": []}'

LEARNED = ('{"successPatterns": ["Keep counter state local"], '
           '"antiPatterns": [], "recommendations": ["Give buttons ids"]}')


@pytest.fixture
def counter_llm():
    return FakeLLM(
        planner=COUNTER_PLAN,
        generator=[generation(COUNTER_JS), generation(COUNTER_CSS)],
        reviewer=NO_ISSUES,
        pattern_learner=LEARNED,
    )


@pytest.fixture
def make_orchestrator(tmp_path):
    """Build an Orchestrator over temp stores and the given doubles."""

    def build(llm, engine=None):
        engine = engine or counter_engine()
        return Orchestrator(
            llm=llm,
            context_store=ContextStore(),
            pattern_store=PatternStore(str(tmp_path / "patterns.jsonl")),
            artifact_store=FileArtifactStore(str(tmp_path / "src")),
            engine_factory=lambda: engine,
        )

    return build
