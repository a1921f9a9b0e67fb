# backend.py
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from io import BytesIO
from typing import Any, Dict, Optional

from docx import Document
from docx.shared import Pt
from fastapi import Body, Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel

from . import __version__, settings, views
from .desk import LeaseDesk
from .documents import DOCX_MEDIA_TYPE, encode_upload
from .model_client import ModelClient, ModelError
from .report import NOT_FOUND, Report
from .session import InvalidTransition, Stage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("redline")

_desk: Optional[LeaseDesk] = None


def get_desk() -> LeaseDesk:
    global _desk
    if _desk is None:
        _desk = LeaseDesk(ModelClient())
    return _desk


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Red-Line %s using %s", __version__, settings.MODEL_NAME)
    yield
    if _desk is not None:
        await _desk.aclose()


app = FastAPI(title="Red-Line", version=__version__, lifespan=lifespan)


class EmailOptions(BaseModel):
    include_attention: bool = False
    include_missing: bool = False


def _now_stamp() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


def _state_payload(desk: LeaseDesk) -> Dict[str, Any]:
    s = desk.state
    return {
        "stage": s.stage.value,
        "phase": s.phase,
        "phase_text": s.phase_text,
        "filename": s.upload.filename if s.upload else None,
        "error": s.error,
        "report": s.report.model_dump() if s.report else None,
        "email": {
            "include_attention": desk.email.include_attention,
            "include_missing": desk.email.include_missing,
            "text": desk.email.text,
            "generating": desk.email.generating,
        },
        "html": views.render_screen(s, desk.email),
    }


def _conflict(e: InvalidTransition) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


def _report_to_docx(report: Report) -> bytes:
    """Render a report as a Word document."""
    doc = Document()

    style = doc.styles["Normal"]
    font = style.font
    font.name = "Times New Roman"
    font.size = Pt(11)

    _, label = views.grade_style(report.grade)
    doc.add_heading("Lease Review", level=0)
    doc.add_paragraph(f"Grade: {report.grade} ({label})")
    doc.add_paragraph(report.summary)

    if report.priorities:
        doc.add_heading("Negotiation Priorities", level=1)
        for p in report.priorities:
            doc.add_paragraph(p, style="List Number")

    sections = [
        ("Red Flags", report.red_flags),
        ("Needs Clarification", report.attention),
        ("Green Flags", report.green_flags),
        ("Missing Clauses", report.missing),
    ]
    for title, items in sections:
        if not items:
            continue
        doc.add_heading(title, level=1)
        for item in items:
            heading = item.title
            severity = getattr(item, "severity", "")
            section = getattr(item, "section", None)
            if severity:
                heading += f" [{severity}]"
            if section:
                heading += f" (§{section})"
            doc.add_paragraph(heading, style="List Bullet")
            doc.add_paragraph(item.detail)
            if getattr(item, "fix", ""):
                doc.add_paragraph(f"Suggested change: {item.fix}")
            if getattr(item, "ask", ""):
                doc.add_paragraph(f"Ask: {item.ask}")

    doc.add_heading("Financial Terms", level=1)
    for name, value in (("Rent", report.money.rent), ("Deposit", report.money.deposit), ("Escalation", report.money.escalation)):
        doc.add_paragraph(f"{name}: {value or NOT_FOUND}")
    if report.money.has_fees:
        for fee in report.money.fees:
            doc.add_paragraph(fee, style="List Bullet")

    doc.add_heading("Key Dates", level=1)
    for name, value in (("Term", report.dates.term), ("Notice", report.dates.notice), ("Renewal", report.dates.renewal)):
        doc.add_paragraph(f"{name}: {value or NOT_FOUND}")

    doc.add_paragraph()
    doc.add_paragraph(views.DISCLAIMER)

    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


@app.get("/", response_class=HTMLResponse)
def home() -> str:
    return PAGE_HTML


@app.get("/api/state")
def get_state(desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    return JSONResponse(_state_payload(desk))


@app.post("/api/upload")
async def upload_file(file: UploadFile = File(...), desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    """Select a lease file; replaces any previously selected file."""
    content = await file.read()
    try:
        upload = encode_upload(file.filename or "lease", file.content_type, content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        desk.select_file(upload)
    except InvalidTransition as e:
        raise _conflict(e)
    return JSONResponse(_state_payload(desk))


@app.post("/api/analyze")
async def analyze(wait: bool = False, desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    """Start analyzing the selected file.

    Returns 202 right away; the page polls ``/api/state`` for the phase and the
    outcome. ``wait=true`` blocks until the analysis settles.
    """
    try:
        task = desk.start_analysis()
    except InvalidTransition as e:
        raise _conflict(e)

    if wait:
        await asyncio.shield(task)
        return JSONResponse(_state_payload(desk))
    return JSONResponse(_state_payload(desk), status_code=202)


@app.post("/api/reset")
def reset(desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    desk.reset()
    return JSONResponse(_state_payload(desk))


@app.post("/api/email")
async def draft_email(options: Optional[EmailOptions] = None, desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    options = options or EmailOptions()
    try:
        draft = await desk.draft_email(options.include_attention, options.include_missing)
    except InvalidTransition as e:
        raise _conflict(e)

    payload = _state_payload(desk)
    payload["text"] = draft.text
    return JSONResponse(payload)


@app.delete("/api/email")
def clear_email(desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    desk.clear_email()
    return JSONResponse(_state_payload(desk))


@app.get("/api/report/docx")
def download_report_docx(desk: LeaseDesk = Depends(get_desk)) -> Response:
    """Download the current report as a Word document."""
    if desk.state.stage is not Stage.REPORTED:
        raise HTTPException(status_code=404, detail="No report found. Analyze a lease first.")

    content = _report_to_docx(desk.state.report)
    filename = f"{_now_stamp()}_lease_review.docx"
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/claude")
async def model_proxy(body: Dict[str, Any] = Body(...), desk: LeaseDesk = Depends(get_desk)) -> Response:
    """Forward a Messages request upstream with the server-held credential."""
    try:
        r = await desk.client.post(body)
    except ModelError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(
        content=r.content,
        status_code=r.status_code,
        media_type=r.headers.get("content-type", "application/json"),
    )


@app.get("/health")
def health(desk: LeaseDesk = Depends(get_desk)) -> JSONResponse:
    detail = {
        "model": settings.MODEL_NAME,
        "model_base_url": settings.MODEL_BASE_URL,
        "api_key_set": bool(desk.client.api_key),
        "stage": desk.state.stage.value,
    }
    return JSONResponse({"ok": True, "detail": detail})


def main() -> None:
    import uvicorn

    uvicorn.run("redline.backend:app", host="127.0.0.1", port=8000)


PAGE_HTML = """
<!doctype html>
<html>
  <head>
    <meta charset="utf-8"/>
    <meta name="viewport" content="width=device-width, initial-scale=1.0"/>
    <title>Red-Line - Lease Review</title>
    <style>
      * { box-sizing: border-box; margin: 0; padding: 0; }

      :root {
        --brand: #9b1b1b;
        --bg: #fafafa;
        --card: #ffffff;
        --text: #18181b;
        --muted: #a1a1aa;
        --border: #e4e4e7;
        --good: #059669;
        --fair: #d97706;
        --risky: #ea580c;
        --danger: #dc2626;
        --purple: #7c3aed;
      }

      body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Inter', 'Roboto', sans-serif;
        background: var(--bg);
        color: var(--text);
        line-height: 1.5;
      }

      header {
        position: sticky; top: 0;
        display: flex; align-items: center; justify-content: space-between;
        padding: 0.75rem 1.5rem;
        background: rgba(255, 255, 255, 0.85);
        border-bottom: 1px solid var(--border);
      }
      header h1 { font-size: 0.95rem; }
      header .logo { display: inline-block; width: 22px; height: 22px; background: var(--brand); border-radius: 3px; margin-right: 0.5rem; vertical-align: middle; }

      main { max-width: 760px; margin: 0 auto; padding: 2rem 1rem; }
      .screen.center { display: flex; flex-direction: column; align-items: center; padding-top: 3rem; text-align: center; }
      .screen.report > * { margin-bottom: 1rem; }

      .muted { color: var(--muted); }
      .small { font-size: 0.75rem; }
      .card { background: var(--card); border: 1px solid var(--border); border-radius: 12px; padding: 1rem; box-shadow: 0 1px 2px rgba(0,0,0,0.04); }

      .drop-zone {
        display: flex; flex-direction: column; align-items: center;
        width: 100%; max-width: 420px; margin-top: 2rem; padding: 3.5rem;
        border: 2px dashed var(--border); border-radius: 16px; background: var(--card);
        cursor: pointer;
      }
      .drop-zone.over { border-color: var(--fair); background: #fffbeb; }
      .drop-title { font-weight: 500; }

      .file-card { display: flex; align-items: center; gap: 0.75rem; width: 100%; max-width: 420px; margin-bottom: 1.5rem; text-align: left; }
      .file-meta { flex: 1; min-width: 0; }
      .file-name { font-weight: 500; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }

      button { font: inherit; cursor: pointer; border-radius: 10px; padding: 0.6rem 1.2rem; border: 1px solid var(--border); }
      button.primary { background: #18181b; color: #fff; border-color: #18181b; font-weight: 600; }
      button.secondary { background: #f4f4f5; color: #52525b; }
      button.icon-btn { background: none; border: none; color: var(--muted); }
      button:disabled { opacity: 0.5; cursor: default; }
      .buttons-group { display: flex; gap: 0.5rem; margin-top: 0.75rem; }
      .button-link { display: inline-block; font-size: 0.8rem; text-decoration: none; border-radius: 10px; padding: 0.5rem 1rem; border: 1px solid var(--border); background: #f4f4f5; color: #52525b; }

      .loading .spinner { width: 42px; height: 42px; border: 3px solid var(--border); border-top-color: var(--fair); border-radius: 50%; animation: spin 1s linear infinite; margin-bottom: 1.5rem; }
      @keyframes spin { to { transform: rotate(360deg); } }
      .progress { width: 12rem; height: 4px; border-radius: 2px; background: #f4f4f5; overflow: hidden; margin-top: 1rem; }
      .progress .bar { height: 100%; background: var(--fair); transition: width 1s ease-out; }
      .dots { display: flex; gap: 6px; margin-top: 1.25rem; }
      .dot { width: 6px; height: 6px; border-radius: 50%; background: var(--border); }
      .dot.on { background: var(--fair); }

      .error-card { max-width: 360px; }
      .error-title { font-weight: 500; margin-bottom: 0.25rem; }
      .error-card button { margin-top: 1.25rem; }

      .grade-card { display: flex; gap: 1rem; align-items: center; }
      .grade { font-size: 2rem; font-weight: 700; width: 3.5rem; height: 3.5rem; display: flex; align-items: center; justify-content: center; border-radius: 12px; border: 1px solid currentColor; }
      .summary { margin-bottom: 0.35rem; }
      .good { color: var(--good); } .fair { color: var(--fair); } .risky { color: var(--risky); }
      .danger { color: var(--danger); } .purple { color: var(--purple); }
      .badge { display: inline-block; font-size: 0.7rem; font-weight: 500; padding: 0.1rem 0.5rem; border-radius: 6px; background: #f4f4f5; }

      .stats { display: grid; grid-template-columns: repeat(4, 1fr); gap: 0.75rem; }
      .stat { display: flex; flex-direction: column; }
      .stat-value { font-size: 1.5rem; font-weight: 700; color: var(--text); }

      .accordion summary { display: flex; justify-content: space-between; cursor: pointer; font-weight: 500; color: var(--text); }
      .accordion .count { font-size: 0.75rem; }
      .flag { padding: 0.75rem 0; border-bottom: 1px solid #f4f4f5; color: var(--text); }
      .flag:last-child { border-bottom: none; }
      .flag-head { display: flex; gap: 0.5rem; align-items: flex-start; }
      .flag-title { flex: 1; font-size: 0.875rem; font-weight: 500; }
      .section-ref { font-size: 0.65rem; color: var(--muted); }
      .flag-detail { font-size: 0.75rem; color: #71717a; margin-top: 0.25rem; }
      .flag-fix { font-size: 0.75rem; color: var(--good); margin-top: 0.35rem; }
      .flag-ask { font-size: 0.75rem; color: var(--fair); margin-top: 0.35rem; }

      .terms-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 0.75rem; }
      .terms h3, .priorities h3 { font-size: 0.8rem; margin-bottom: 0.5rem; }
      .terms .row { display: flex; justify-content: space-between; gap: 1rem; font-size: 0.85rem; padding: 0.2rem 0; }
      .fees { margin-top: 0.5rem; padding-left: 1.2rem; font-size: 0.75rem; color: #71717a; }
      .priorities ol { padding-left: 1.2rem; font-size: 0.875rem; }

      .chips { display: flex; flex-wrap: wrap; gap: 0.5rem; margin: 0.75rem 0; }
      .chip { font-size: 0.75rem; font-weight: 500; border: 1px solid var(--border); border-radius: 8px; padding: 0.3rem 0.7rem; color: var(--muted); }
      .chip.on.danger { color: var(--danger); } .chip.on.fair { color: var(--fair); } .chip.on.purple { color: var(--purple); }
      .email-text { white-space: pre-wrap; font-family: inherit; font-size: 0.85rem; background: #fafafa; border: 1px solid var(--border); border-radius: 8px; padding: 1rem; }

      .disclaimer { text-align: center; font-size: 0.7rem; color: #d4d4d8; padding: 1rem 0 2rem; }

      .status { display: none; margin-top: 1rem; font-size: 0.8rem; text-align: center; }
      .status.error { color: var(--danger); }
    </style>
  </head>
  <body>
    <header>
      <h1><span class="logo"></span>Red-Line</h1>
      <button class="secondary" id="new-btn" style="display: none;" data-action="reset">New</button>
    </header>
    <main>
      <div id="screen"></div>
      <div id="status" class="status"></div>
    </main>

    <script>
      const screen = document.getElementById('screen');
      const status = document.getElementById('status');
      const newBtn = document.getElementById('new-btn');
      let polling = null;

      function showStatus(message, type) {
        status.textContent = message;
        status.className = 'status ' + type;
        status.style.display = 'block';
      }

      function hideStatus() {
        status.style.display = 'none';
      }

      async function api(path, opts) {
        const res = await fetch(path, opts || {});
        const data = await res.json().catch(() => ({ detail: res.statusText }));
        if (!res.ok) {
          throw new Error(data.detail || `HTTP ${res.status}`);
        }
        return data;
      }

      function show(state) {
        screen.innerHTML = state.html;
        newBtn.style.display = state.stage === 'empty' ? 'none' : '';
        bindScreen();

        if (state.stage === 'analyzing') {
          if (!polling) polling = setInterval(refresh, 1000);
        } else if (polling) {
          clearInterval(polling);
          polling = null;
        }
      }

      async function refresh() {
        try {
          show(await api('/api/state'));
        } catch (e) {
          showStatus('✗ ' + e.message, 'error');
        }
      }

      async function run(path, opts) {
        hideStatus();
        try {
          show(await api(path, opts));
        } catch (e) {
          showStatus('✗ ' + e.message, 'error');
        }
      }

      function uploadFile(file) {
        if (!file) return;
        const formData = new FormData();
        formData.append('file', file);
        run('/api/upload', { method: 'POST', body: formData });
      }

      async function draftEmail(btn) {
        const panel = document.getElementById('email-panel');
        const checked = (name) => {
          const box = panel.querySelector(`input[name="${name}"]`);
          return !!(box && box.checked);
        };
        btn.disabled = true;
        btn.textContent = 'Drafting email...';
        await run('/api/email', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({
            include_attention: checked('include_attention'),
            include_missing: checked('include_missing'),
          }),
        });
      }

      async function copyEmail(btn) {
        const text = document.getElementById('email-text').textContent;
        await navigator.clipboard.writeText(text);
        btn.textContent = 'Copied!';
        setTimeout(() => { btn.textContent = 'Copy Email'; }, 2000);
      }

      const actions = {
        'reset': () => run('/api/reset', { method: 'POST' }),
        'analyze': () => run('/api/analyze', { method: 'POST' }),
        'draft-email': draftEmail,
        'copy-email': copyEmail,
        'clear-email': () => run('/api/email', { method: 'DELETE' }),
      };

      function bindScreen() {
        screen.querySelectorAll('[data-action]').forEach(btn => {
          btn.addEventListener('click', (e) => {
            e.preventDefault();
            actions[btn.dataset.action](btn);
          });
        });

        const input = document.getElementById('file-input');
        const dropZone = document.getElementById('drop-zone');
        if (input) {
          input.addEventListener('change', (e) => uploadFile(e.target.files[0]));
        }
        if (dropZone) {
          dropZone.addEventListener('dragover', (e) => { e.preventDefault(); dropZone.classList.add('over'); });
          dropZone.addEventListener('dragleave', () => dropZone.classList.remove('over'));
          dropZone.addEventListener('drop', (e) => {
            e.preventDefault();
            dropZone.classList.remove('over');
            uploadFile(e.dataTransfer.files[0]);
          });
        }

        screen.querySelectorAll('.chip input:not([disabled])').forEach(box => {
          box.addEventListener('change', () => box.parentElement.classList.toggle('on', box.checked));
        });
      }

      newBtn.addEventListener('click', () => actions['reset']());
      refresh();
    </script>
  </body>
</html>
""".strip()
