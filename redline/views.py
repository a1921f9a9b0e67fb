# views.py
# Pure renderers; the page script swaps each fragment into #screen.
from html import escape
from typing import Iterable, Optional, Tuple

from .desk import EmailDraft
from .prompts import PHASES
from .report import NOT_FOUND, Report
from .session import DeskState, Stage, UploadSession

# grade letter -> (css tone, label)
GRADE_STYLES = {
    "A": ("good", "Strong"),
    "B": ("good", "Good"),
    "C": ("fair", "Fair"),
    "D": ("risky", "Risky"),
    "F": ("danger", "Dangerous"),
}
DEFAULT_GRADE = "C"

DISCLAIMER = "For informational purposes only — consult a qualified attorney before signing."


def grade_style(grade: Optional[str]) -> Tuple[str, str]:
    return GRADE_STYLES.get((grade or "")[:1].upper(), GRADE_STYLES[DEFAULT_GRADE])


def render_upload() -> str:
    return """
<div class="screen center">
  <h2>Upload your lease</h2>
  <p class="muted">Get an instant red-line analysis before you sign.</p>
  <label class="drop-zone" id="drop-zone">
    <input type="file" id="file-input" accept=".pdf,.doc,.docx,.txt" hidden/>
    <span class="drop-title">Click or drop file</span>
    <span class="muted small">PDF, DOC, DOCX, TXT</span>
  </label>
</div>
""".strip()


def render_file_ready(upload: UploadSession) -> str:
    return f"""
<div class="screen center">
  <div class="card file-card">
    <div class="file-meta">
      <p class="file-name">{escape(upload.filename)}</p>
      <p class="muted small">{upload.size_kb} KB</p>
    </div>
    <button class="icon-btn" data-action="reset" title="Remove">✕</button>
  </div>
  <button class="primary" data-action="analyze">Analyze Contract</button>
</div>
""".strip()


def render_loading(phase: int) -> str:
    phase = max(0, min(phase, len(PHASES) - 1))
    width = round((phase + 1) / len(PHASES) * 100)
    dots = "".join(
        f'<span class="dot{" on" if i <= phase else ""}"></span>' for i in range(len(PHASES))
    )
    return f"""
<div class="screen center loading">
  <div class="spinner"></div>
  <p class="phase-text">{escape(PHASES[phase])}...</p>
  <div class="progress"><div class="bar" style="width: {width}%"></div></div>
  <div class="dots">{dots}</div>
</div>
""".strip()


def render_error(message: Optional[str]) -> str:
    return f"""
<div class="screen center">
  <div class="card error-card">
    <p class="error-title">Something went wrong</p>
    <p class="muted small">{escape(message or "Analysis failed")}</p>
    <button class="secondary" data-action="reset">Try again</button>
  </div>
</div>
""".strip()


def _section(item) -> str:
    section = getattr(item, "section", None)
    return f'<span class="section-ref">§{escape(section)}</span>' if section else ""


def render_flag(item) -> str:
    severity = getattr(item, "severity", "")
    badge = ""
    if severity:
        tone = "danger" if severity == "high" else "fair"
        badge = f'<span class="badge {tone}">{escape(severity)}</span>'
    fix = getattr(item, "fix", "")
    ask = getattr(item, "ask", "")
    return (
        '<div class="flag">'
        f'<div class="flag-head"><span class="flag-title">{escape(item.title)}</span>{badge}{_section(item)}</div>'
        f'<p class="flag-detail">{escape(item.detail)}</p>'
        + (f'<p class="flag-fix">→ {escape(fix)}</p>' if fix else "")
        + (f'<p class="flag-ask">? {escape(ask)}</p>' if ask else "")
        + "</div>"
    )


def render_accordion(title: str, tone: str, items: Iterable, open_: bool = False) -> str:
    items = list(items)
    if not items:
        return ""
    body = "".join(render_flag(i) for i in items)
    return (
        f'<details class="card accordion {tone}"{" open" if open_ else ""}>'
        f'<summary><span>{escape(title)}</span><span class="count">{len(items)}</span></summary>'
        f"{body}</details>"
    )


def _rows(pairs) -> str:
    return "".join(
        f'<div class="row"><span class="muted small">{label}</span><span>{escape(value)}</span></div>'
        for label, value in pairs
        if value and value != NOT_FOUND
    )


def render_money(report: Report) -> str:
    money = report.money
    fees = ""
    if money.has_fees:
        fees = '<ul class="fees">' + "".join(f"<li>{escape(f)}</li>" for f in money.fees) + "</ul>"
    rows = _rows([("Rent", money.rent), ("Deposit", money.deposit), ("Escalation", money.escalation)])
    return f'<div class="card terms"><h3>Financial Terms</h3>{rows}{fees}</div>'


def render_dates(report: Report) -> str:
    dates = report.dates
    rows = _rows([("Term", dates.term), ("Notice", dates.notice), ("Renewal", dates.renewal)])
    return f'<div class="card terms"><h3>Key Dates</h3>{rows}</div>'


def render_email(report: Report, email: EmailDraft) -> str:
    def chip(label, name, count, checked, tone):
        return (
            f'<label class="chip {tone}{" on" if checked else ""}">'
            f'<input type="checkbox" name="{name}"{" checked" if checked else ""}'
            f'{" disabled" if name == "red_flags" else ""}/> {label} ({count})</label>'
        )

    chips = chip("Red Flags", "red_flags", len(report.red_flags), True, "danger")
    if report.attention:
        chips += chip("Clarifications", "include_attention", len(report.attention), email.include_attention, "fair")
    if report.missing:
        chips += chip("Missing Clauses", "include_missing", len(report.missing), email.include_missing, "purple")

    if email.text:
        body = (
            f'<pre class="email-text" id="email-text">{escape(email.text)}</pre>'
            '<div class="buttons-group">'
            '<button class="primary" data-action="copy-email">Copy Email</button>'
            '<button class="secondary" data-action="clear-email">Regenerate</button>'
            "</div>"
        )
    elif email.generating:
        body = '<button class="primary" disabled>Drafting email...</button>'
    else:
        body = '<button class="primary" data-action="draft-email">Generate Email</button>'

    return (
        '<details class="card accordion email" id="email-panel" open>'
        "<summary><span>Draft Email to Landlord</span></summary>"
        '<p class="muted small">All red flags are included. Toggle additional items to include:</p>'
        f'<div class="chips">{chips}</div>{body}</details>'
    )


def render_report(report: Report, email: Optional[EmailDraft] = None) -> str:
    tone, label = grade_style(report.grade)
    priorities = ""
    if report.priorities:
        priorities = (
            '<div class="card priorities"><h3>Negotiation Priorities</h3><ol>'
            + "".join(f"<li>{escape(p)}</li>" for p in report.priorities)
            + "</ol></div>"
        )
    stats = "".join(
        f'<div class="card stat {t}"><span class="stat-value">{n}</span><span class="muted small">{name}</span></div>'
        for name, n, t in (
            ("Red Flags", len(report.red_flags), "danger"),
            ("Clarify", len(report.attention), "fair"),
            ("Green Flags", len(report.green_flags), "good"),
            ("Missing", len(report.missing), "purple"),
        )
    )
    return f"""
<div class="screen report">
  <div class="card grade-card">
    <div class="grade {tone}">{escape(report.grade)}</div>
    <div>
      <p class="summary">{escape(report.summary)}</p>
      <span class="badge {tone}">{label}</span>
    </div>
  </div>
  {priorities}
  <div class="stats">{stats}</div>
  {render_accordion("Red Flags", "danger", report.red_flags, open_=True)}
  {render_accordion("Needs Clarification", "fair", report.attention, open_=True)}
  {render_accordion("Green Flags", "good", report.green_flags)}
  {render_accordion("Missing Clauses", "purple", report.missing)}
  <div class="terms-grid">{render_money(report)}{render_dates(report)}</div>
  <div class="buttons-group"><a class="secondary button-link" href="/api/report/docx">Download report (.docx)</a></div>
  {render_email(report, email or EmailDraft())}
  <p class="disclaimer">{DISCLAIMER}</p>
</div>
""".strip()


def render_screen(state: DeskState, email: Optional[EmailDraft] = None) -> str:
    if state.stage is Stage.FILE_SELECTED:
        return render_file_ready(state.upload)
    if state.stage is Stage.ANALYZING:
        return render_loading(state.phase)
    if state.stage is Stage.FAILED:
        return render_error(state.error)
    if state.stage is Stage.REPORTED:
        return render_report(state.report, email)
    return render_upload()
