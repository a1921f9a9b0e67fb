import asyncio

import httpx
import pytest

from redline.desk import LeaseDesk
from redline.prompts import PHASES
from redline.session import InvalidTransition, Stage
from redline.workflows import EMAIL_FAILURE


def _desk(fake_model, interval=60.0):
    return LeaseDesk(fake_model.client(), phase_interval=interval)


def _tickers():
    return [t for t in asyncio.all_tasks() if getattr(t.get_coro(), "__qualname__", "").endswith("_tick")]


@pytest.mark.asyncio
async def test_analyze_reports(fake_model, upload, report_dict):
    fake_model.reply_report(report_dict)
    desk = _desk(fake_model)
    desk.select_file(upload)

    state = await desk.analyze()

    assert state.stage is Stage.REPORTED
    assert state.report.grade == "B"
    assert state.error is None


@pytest.mark.asyncio
async def test_analyze_failure_keeps_model_message(fake_model, upload):
    fake_model.reply({"type": "error", "error": {"type": "invalid_request_error",
                                                 "message": "Could not process PDF"}}, status=400)
    desk = _desk(fake_model)
    desk.select_file(upload)

    state = await desk.analyze()

    assert state.stage is Stage.FAILED
    assert state.error == "Could not process PDF"
    assert state.report is None


@pytest.mark.asyncio
async def test_phases_advance_and_ticker_stops(fake_model, upload, report_dict):
    desk = _desk(fake_model, interval=0.01)
    seen = []

    async def slow(request):
        for _ in range(500):
            seen.append(desk.state.phase)
            if desk.state.phase == len(PHASES) - 1:
                break
            await asyncio.sleep(0.005)
        await asyncio.sleep(0.05)
        seen.append(desk.state.phase)
        return httpx.Response(200, json={"content": [{"type": "text", "text": '{"summary": "s", "grade": "A"}'}]})

    fake_model.then(slow)
    desk.select_file(upload)
    await desk.analyze()

    assert max(seen) == len(PHASES) - 1
    assert seen[-1] == len(PHASES) - 1
    assert desk.state.stage is Stage.REPORTED
    assert desk.state.phase == 0
    assert _tickers() == []


@pytest.mark.asyncio
async def test_ticker_cancelled_on_failure(fake_model, upload):
    fake_model.fail()
    desk = _desk(fake_model, interval=0.01)
    desk.select_file(upload)

    await desk.analyze()

    assert desk.state.stage is Stage.FAILED
    assert _tickers() == []


@pytest.mark.asyncio
async def test_reset_during_analysis_discards_result(fake_model, upload, report_dict):
    release = asyncio.Event()

    async def held(request):
        await release.wait()
        return httpx.Response(200, json={"content": [{"type": "text", "text": '{"summary": "s", "grade": "A"}'}]})

    fake_model.then(held)
    desk = _desk(fake_model)
    desk.select_file(upload)
    task = desk.start_analysis()
    await asyncio.sleep(0)

    desk.reset()
    release.set()
    await task

    assert desk.state.stage is Stage.EMPTY
    assert desk.state.report is None


@pytest.mark.asyncio
async def test_second_analysis_rejected_while_running(fake_model, upload):
    release = asyncio.Event()

    async def held(request):
        await release.wait()
        return httpx.Response(200, json={"content": [{"type": "text", "text": '{"summary": "s", "grade": "A"}'}]})

    fake_model.then(held)
    desk = _desk(fake_model)
    desk.select_file(upload)
    task = desk.start_analysis()

    with pytest.raises(InvalidTransition):
        desk.start_analysis()

    release.set()
    await task
    assert len(fake_model.requests) == 1


@pytest.mark.asyncio
async def test_email_requires_report(fake_model):
    desk = _desk(fake_model)
    with pytest.raises(InvalidTransition):
        await desk.draft_email()


@pytest.mark.asyncio
async def test_email_draft_and_clear(fake_model, upload, report_dict):
    fake_model.reply_report(report_dict).reply_text("Hi,\n\nPlease see below.")
    desk = _desk(fake_model)
    desk.select_file(upload)
    await desk.analyze()

    draft = await desk.draft_email(include_attention=True)

    assert draft.text == "Hi,\n\nPlease see below."
    assert desk.email.include_attention is True
    assert desk.email.generating is False
    assert "3 concerns" in fake_model.requests[1]["messages"][0]["content"]

    desk.clear_email()
    assert desk.email.text == ""
    assert desk.email.include_attention is True


@pytest.mark.asyncio
async def test_email_failure_text(fake_model, upload, report_dict):
    fake_model.reply_report(report_dict).fail()
    desk = _desk(fake_model)
    desk.select_file(upload)
    await desk.analyze()

    draft = await desk.draft_email()
    assert draft.text == EMAIL_FAILURE


@pytest.mark.asyncio
async def test_one_email_at_a_time(fake_model, upload, report_dict):
    release = asyncio.Event()

    async def held(request):
        await release.wait()
        return httpx.Response(200, json={"content": [{"type": "text", "text": "Hi"}]})

    fake_model.reply_report(report_dict).then(held)
    desk = _desk(fake_model)
    desk.select_file(upload)
    await desk.analyze()

    first = asyncio.create_task(desk.draft_email())
    await asyncio.sleep(0.01)
    with pytest.raises(InvalidTransition):
        await desk.draft_email()

    release.set()
    assert (await first).text == "Hi"


@pytest.mark.asyncio
async def test_reset_clears_everything(fake_model, upload, report_dict):
    fake_model.reply_report(report_dict).reply_text("Hi")
    desk = _desk(fake_model)
    desk.select_file(upload)
    await desk.analyze()
    await desk.draft_email()

    state = desk.reset()

    assert state.stage is Stage.EMPTY
    assert state.upload is None and state.report is None and state.error is None
    assert state.phase == 0
    assert desk.email.text == ""


@pytest.mark.asyncio
async def test_analysis_survives_cancelled_waiter(fake_model, upload):
    release = asyncio.Event()

    async def held(request):
        await release.wait()
        return httpx.Response(200, json={"content": [{"type": "text", "text": '{"summary": "s", "grade": "A"}'}]})

    fake_model.then(held)
    desk = _desk(fake_model)
    desk.select_file(upload)

    waiter = asyncio.create_task(desk.analyze())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    release.set()
    for _ in range(100):
        if desk.state.stage is not Stage.ANALYZING:
            break
        await asyncio.sleep(0.01)

    assert desk.state.stage is Stage.REPORTED
    assert desk.state.report.grade == "A"


@pytest.mark.asyncio
async def test_email_returned_after_reset_keeps_request_flags(fake_model, upload, report_dict):
    release = asyncio.Event()

    async def held(request):
        await release.wait()
        return httpx.Response(200, json={"content": [{"type": "text", "text": "Hi"}]})

    fake_model.reply_report(report_dict).then(held)
    desk = _desk(fake_model)
    desk.select_file(upload)
    await desk.analyze()

    pending = asyncio.create_task(desk.draft_email(include_attention=True, include_missing=True))
    await asyncio.sleep(0.01)
    desk.reset()
    release.set()
    draft = await pending

    assert draft.text == "Hi"
    assert draft.include_attention is True and draft.include_missing is True
    assert draft.generating is False
    assert desk.email.text == ""
    assert desk.email.include_attention is False
