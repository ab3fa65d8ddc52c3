"""
Tests for the server-rendered client: auth -> selection -> test -> report.
"""

import json

from sqlalchemy import select

from assessor.models.assessment import AssessmentRecord
from assessor.models.session_snapshot import SessionSnapshot
from assessor.services.session_flow import TIMEOUT_ANSWER
from tests.conftest import register_and_login

MC_REPLY = json.dumps({"questions": [{"challenge": "What is 2+2?", "options": ["3", "4", "5", "6"]}]})
EVAL_REPLY = json.dumps({"score": 10, "feedback": "Correct!"})


async def post_form(client, path, data=None):
    r = await client.post(path, data=data or {}, follow_redirects=False)
    assert r.status_code == 303, r.text
    return r


async def login_via_form(client):
    await register_and_login(client, "alice", "a@x.com", "pw123")
    await post_form(client, "/ui/login", {"email": "a@x.com", "password": "pw123"})


async def start_one_question_test(client, gateway):
    gateway.queue(MC_REPLY)
    await post_form(
        client,
        "/ui/start",
        {"type": "multi", "domains": "math", "difficulty": "Beginner", "limit": "1"},
    )


async def test_first_visit_shows_login(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert 'action="/ui/login"' in r.text
    assert "assessor_session" in r.cookies


async def test_bad_credentials_stay_on_login(client, alice):
    r = await post_form(client, "/ui/login", {"email": "a@x.com", "password": "wrong-one"})
    assert "error=invalid" in r.headers["location"]
    page = await client.get(r.headers["location"])
    assert "Wrong email or password." in page.text
    assert 'action="/ui/login"' in page.text


async def test_full_flow_to_report(client, gateway, session_factory):
    await login_via_form(client)
    page = await client.get("/")
    assert 'action="/ui/start"' in page.text

    await start_one_question_test(client, gateway)
    page = await client.get("/")
    assert "What is 2+2?" in page.text
    assert 'action="/ui/answer"' in page.text
    assert "Question 1 of 1" in page.text

    gateway.queue(EVAL_REPLY)
    await post_form(client, "/ui/answer", {"index": "0", "answer": "4"})
    page = await client.get("/")
    assert "Score: 10.0/10" in page.text
    assert "Correct!" in page.text
    assert "View Report" in page.text

    await post_form(client, "/ui/next")
    page = await client.get("/")
    assert "Accuracy: 100.0%" in page.text
    assert "What is 2+2?" in page.text

    await post_form(client, "/ui/reset")
    page = await client.get("/")
    assert 'action="/ui/start"' in page.text


async def test_double_submit_evaluates_once(client, gateway):
    await login_via_form(client)
    await start_one_question_test(client, gateway)

    gateway.queue(EVAL_REPLY)
    await post_form(client, "/ui/answer", {"index": "0", "answer": "4"})
    await post_form(client, "/ui/answer", {"index": "0", "answer": "5"})

    # one generation prompt plus exactly one evaluation prompt
    assert len(gateway.prompts) == 2
    page = await client.get("/")
    assert "Correct!" in page.text


async def test_timeout_submits_placeholder(client, gateway):
    await login_via_form(client)
    await start_one_question_test(client, gateway)

    gateway.queue(json.dumps({"score": 0, "feedback": "No answer given."}))
    await post_form(client, "/ui/answer", {"index": "0", "answer": "", "timed_out": "true"})

    assert TIMEOUT_ANSWER in gateway.prompts[-1]
    page = await client.get("/")
    assert "(time expired)" in page.text


async def test_generation_failure_keeps_selection(client, gateway):
    await login_via_form(client)
    gateway.queue("no json here")
    r = await post_form(client, "/ui/start", {"type": "general", "domains": "math", "limit": "1"})
    assert "error=generate" in r.headers["location"]
    page = await client.get(r.headers["location"])
    assert "Could not generate challenges." in page.text
    assert 'action="/ui/start"' in page.text


async def test_evaluation_failure_keeps_question_open(client, gateway):
    await login_via_form(client)
    await start_one_question_test(client, gateway)

    gateway.queue('{"score": 42, "feedback": "?"}')
    r = await post_form(client, "/ui/answer", {"index": "0", "answer": "4"})
    assert "error=evaluate" in r.headers["location"]
    page = await client.get("/")
    assert 'action="/ui/answer"' in page.text


async def test_corrupt_snapshot_restarts_at_login(client, session_factory):
    async with session_factory() as db:
        db.add(SessionSnapshot(id="corrupt-sid", payload='{"phase": "test", "questions": ['))
        await db.commit()

    client.cookies.set("assessor_session", "corrupt-sid")
    r = await client.get("/")
    assert r.status_code == 200
    assert 'action="/ui/login"' in r.text


async def test_logout_returns_to_login(client):
    await login_via_form(client)
    await post_form(client, "/ui/logout")
    page = await client.get("/")
    assert 'action="/ui/login"' in page.text


async def test_register_from_login_page_goes_to_selection(client):
    page = await client.get("/")
    assert 'action="/ui/register"' in page.text

    await post_form(client, "/ui/register", {"username": "Bob", "email": "Bob@X.com", "password": "pw123"})
    page = await client.get("/")
    assert 'action="/ui/start"' in page.text
    assert "Bob" in page.text

    r = await client.post("/login", json={"email": "bob@x.com", "password": "pw123"})
    assert r.status_code == 200


async def test_register_duplicate_email_shows_error(client, alice):
    r = await post_form(client, "/ui/register", {"username": "Al", "email": "a@x.com", "password": "pw123"})
    assert "error=exists" in r.headers["location"]
    page = await client.get(r.headers["location"])
    assert "Email already registered." in page.text
    assert 'action="/ui/register"' in page.text


async def test_register_short_password_shows_error(client):
    r = await post_form(client, "/ui/register", {"username": "Cy", "email": "c@x.com", "password": "pw"})
    assert "error=short" in r.headers["location"]


async def test_history_requires_login(client):
    r = await client.get("/ui/history", follow_redirects=False)
    assert r.status_code == 303


async def test_adaptive_test_follows_next_scenario(client, gateway, session_factory):
    """
    GIVEN: A logged-in user starting a 2-scenario adaptive test.
    WHEN:  Each answer is evaluated together with a follow-up scenario.
    THEN:  The follow-up is shown as the next question, and the dashboard lists
           every answer with its logic and tone.
    """
    await login_via_form(client)
    gateway.queue(json.dumps({"questions": [{"challenge": "A client threatens to leave.", "imageKeywords": "office"}]}))
    await post_form(client, "/ui/start", {"type": "adaptive", "domains": "support", "limit": "2"})
    assert "Generate 1 unique" in gateway.prompts[0]

    page = await client.get("/")
    assert "A client threatens to leave." in page.text
    assert "Question 1 of 2" in page.text

    gateway.queue(json.dumps({
        "score": 4, "logic": 3, "tone": 5, "feedback": "Too vague.",
        "nextScenario": "A colleague misses a deadline.",
    }))
    await post_form(client, "/ui/answer", {"index": "0", "answer": "Apologise."})
    assert "Scenario: A client threatens to leave." in gateway.prompts[1]
    page = await client.get("/")
    assert "Logic: 3.0/10, Tone: 5.0/10" in page.text
    assert "Next Scenario" in page.text

    await post_form(client, "/ui/next")
    page = await client.get("/")
    assert "A colleague misses a deadline." in page.text
    assert "Question 2 of 2" in page.text

    gateway.queue(json.dumps({
        "score": 8, "logic": 9, "tone": 7, "feedback": "Clear plan.",
        "nextScenario": "A vendor ships late.",
    }))
    await post_form(client, "/ui/answer", {"index": "1", "answer": "Talk to them privately."})
    page = await client.get("/")
    assert "View Report" in page.text

    dashboard = await client.get("/ui/history")
    assert dashboard.status_code == 200
    assert "A colleague misses a deadline." in dashboard.text
    assert "A client threatens to leave." in dashboard.text
    assert "<td>9.0</td>" in dashboard.text
    assert "<td>5.0</td>" in dashboard.text
    assert "Back to Test" in dashboard.text

    await post_form(client, "/ui/next")
    page = await client.get("/")
    assert "Accuracy: 60.0%" in page.text

    async with session_factory() as db:
        result = await db.execute(select(AssessmentRecord).order_by(AssessmentRecord.id.desc()))
        records = list(result.scalars().all())
    assert [r.type for r in records] == ["adaptive", "adaptive"]
    assert [r.challenge for r in records] == ["A colleague misses a deadline.", "A client threatens to leave."]
