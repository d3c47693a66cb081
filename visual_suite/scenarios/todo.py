"""Visual scenarios for the ToDo ("Time Blind") app.

Each scenario drives the page through the browser session and submits its
checkpoints to the check session it is given. Shared by the pytest suite
and the ``visual-suite run`` command.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from ..runner.check_session import CheckSession
from ..service.base import BrowserSession

NEW_TASK_INPUT = 'input[placeholder="New task"]'
SUBMIT_BUTTON = 'button[type="submit"]'
HEADING = "h1"
EXPECTED_TITLE = "Time Blind"

ScenarioBody = Callable[[BrowserSession, CheckSession, str], None]


@dataclass(frozen=True)
class Scenario:
    """A named test body for the ToDo app."""
    name: str
    body: ScenarioBody
    app_name: Optional[str] = None

    def bind(self, base_url: str) -> Callable[[BrowserSession, CheckSession], None]:
        """Fix the app URL, giving a body the orchestrator can run."""
        def run(browser: BrowserSession, session: CheckSession) -> None:
            self.body(browser, session, base_url)
        return run


def add_task(page: BrowserSession, text: str) -> None:
    page.fill(NEW_TASK_INPUT, text)
    page.click(SUBMIT_BUTTON)


def delete_task(page: BrowserSession, text: str) -> None:
    page.click(f'li:has-text("{text}") button')


def has_title(page: BrowserSession, session: CheckSession, base_url: str) -> None:
    page.goto(base_url)
    heading = (page.locator(HEADING).text_content() or "").strip()
    assert heading == EXPECTED_TITLE, f"Expected h1 {EXPECTED_TITLE!r}, got {heading!r}"
    session.checkpoint(EXPECTED_TITLE, full_page=False)


def adds_a_task(page: BrowserSession, session: CheckSession, base_url: str) -> None:
    page.goto(base_url)
    add_task(page, "Test task")
    session.checkpoint("Add Task", full_page=True)


def adds_three_tasks(page: BrowserSession, session: CheckSession, base_url: str) -> None:
    page.goto(base_url)
    for text in ("Task 1", "Task 2", "Task 3"):
        add_task(page, text)
    session.checkpoint("Add 3 Tasks", full_page=True)


def deletes_a_task(page: BrowserSession, session: CheckSession, base_url: str) -> None:
    page.goto(base_url)
    for text in ("Task 1", "Task 2", "Task 3"):
        add_task(page, text)
    delete_task(page, "Task 2")
    session.checkpoint("Delete Task", full_page=True)


SCENARIOS: list[Scenario] = [
    Scenario("has h1 that says Time Blind", has_title, app_name="Time Blind"),
    Scenario("adds a task", adds_a_task),
    Scenario("adds 3 tasks", adds_three_tasks),
    Scenario("deletes a task", deletes_a_task),
]
