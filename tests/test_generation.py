import asyncio
import http.client

import pytest
from fakes import CHANNEL, FakeCompletion, FakeTransport, fake_fetch, issue, issues_doc, make_settings

from issue_bot.errors import CompletionError, IssueValidationError
from issue_bot.generation import IssueGenerator, UpdateThrottle
from issue_bot.models import Bundle

DOC = issues_doc(issue())


def _bundle(*images):
    b = Bundle()
    b.add_message("The login button is broken", list(images))
    return b


def test_update_throttle_fires_every_step():
    throttle = UpdateThrottle(10)
    fired = [n for n in (3, 9, 10, 12, 19, 20, 35) if throttle(n)]
    assert fired == [10, 20, 35]


def test_bad_image_is_skipped_and_generation_continues():
    transport = FakeTransport()
    completion = FakeCompletion(DOC)
    gen = IssueGenerator(
        transport,
        completion,
        make_settings(),
        fetch=fake_fetch(bad={"https://cdn.example.com/missing.png"}),
    )
    issues = asyncio.run(
        gen.generate(
            _bundle("https://cdn.example.com/ok.png", "https://cdn.example.com/missing.png"),
            CHANNEL,
        )
    )
    assert len(issues) == 1
    assert "⚠️ Skipping image: HTTP 404" in transport.texts()
    blocks = completion.calls[0]["content"]
    assert [b["type"] for b in blocks] == ["text", "image"]


def test_host_outside_allowlist_is_skipped():
    transport = FakeTransport()
    completion = FakeCompletion(DOC)
    gen = IssueGenerator(
        transport,
        completion,
        make_settings(image_allowed_hosts=("discordapp.com",)),
        fetch=fake_fetch(),
    )
    asyncio.run(
        gen.generate(
            _bundle("https://cdn.discordapp.com/a.png", "https://evil.example/b.png"), CHANNEL
        )
    )
    assert len(completion.calls[0]["content"]) == 2
    assert any(t.startswith("⚠️ Skipping image: host not allowed") for t in transport.texts())


def test_status_message_is_rerendered_and_finalized():
    transport = FakeTransport()
    gen = IssueGenerator(
        transport, FakeCompletion(DOC, chunk=5), make_settings(stream_update_chars=50)
    )
    asyncio.run(gen.generate(_bundle(), CHANNEL))
    status = transport.sent[0]
    progress = [e for e in status.edits if e["content"].startswith("🔄 Generating content...")]
    assert len(progress) == len(DOC) // 50
    assert status.content.startswith("✅ Generation complete!")


def test_stream_failure_marks_status_and_raises():
    transport = FakeTransport()
    gen = IssueGenerator(transport, FakeCompletion(DOC, fail_after=20), make_settings())
    with pytest.raises(CompletionError):
        asyncio.run(gen.generate(_bundle(), CHANNEL))
    assert transport.sent[0].content == "❌ Generation failed!"


def test_invalid_output_keeps_content_visible():
    transport = FakeTransport()
    gen = IssueGenerator(transport, FakeCompletion('{"issues": [{"title": "short"}]}'), make_settings())
    with pytest.raises(IssueValidationError) as exc:
        asyncio.run(gen.generate(_bundle(), CHANNEL))
    assert "issues.0.title" in str(exc.value)
    status = transport.sent[0].content
    assert status.startswith("❌ Validation failed!")
    assert '"short"' in status


def test_broken_download_does_not_abort_batch(monkeypatch):
    def boom(req, timeout):
        raise http.client.IncompleteRead(b"abcd", 100)

    monkeypatch.setattr("urllib.request.urlopen", boom)
    transport = FakeTransport()
    completion = FakeCompletion(DOC)
    gen = IssueGenerator(transport, completion, make_settings())
    issues = asyncio.run(gen.generate(_bundle("https://cdn.example.com/a.png"), CHANNEL))
    assert len(issues) == 1
    assert any(t.startswith("⚠️ Skipping image: IncompleteRead") for t in transport.texts())
    assert [b["type"] for b in completion.calls[0]["content"]] == ["text"]
