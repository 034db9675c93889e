"""FastAPI frontend for Kid Brokerage.

Pages are rendered server-side as plain HTML strings. Form submissions go
through :class:`~kidbrokerage.service.KidBrokerage`; rejected submissions
redirect back with a flash notice kept in the Starlette session, and nothing
is written. Serve with ``uvicorn kidbrokerage.webapp:app``.
"""

from __future__ import annotations

from html import escape as html_escape
from typing import Iterable, Optional, Tuple

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from ..api import ApiExporter
from ..exceptions import KidBrokerageError, NotFoundError, ValidationError
from ..models import AccountDetail, AccountKind, KidOverview, MarketSummary, TransactionDirection
from ..money import format_amount, format_amount_numeric, parse_amount
from ..ops import StructuredLogger
from ..planner import SavingsProjection, parse_number, project_weekly_savings
from ..pricing import PriceOracle, YahooPriceOracle
from ..service import KidBrokerage, must
from . import persistence as _persistence
from .config import (
    APP_TITLE,
    EVENT_LOG_PATH,
    QUOTE_TIMEOUT_SECONDS,
    QUOTE_URL_TEMPLATE,
    QUOTE_USER_AGENT,
    SESSION_SECRET,
)


# ---------------------------------------------------------------------------
# FastAPI application setup
# ---------------------------------------------------------------------------
app = FastAPI(title=APP_TITLE)
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    same_site="lax",
    max_age=None,
)

event_log = StructuredLogger(path=EVENT_LOG_PATH)
price_oracle: PriceOracle = YahooPriceOracle(
    url_template=QUOTE_URL_TEMPLATE,
    user_agent=QUOTE_USER_AGENT,
    timeout=QUOTE_TIMEOUT_SECONDS,
)
exporter = ApiExporter()


def build_service() -> KidBrokerage:
    bind = _persistence.engine
    _persistence.ensure_tables(bind)
    return KidBrokerage(_persistence.SqlRecordStore(bind), price_oracle, logger=event_log)


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------
def set_notice(request: Request, message: str, kind: str = "info") -> None:
    request.session["notice"] = message
    request.session["notice_kind"] = kind


def pop_notice(request: Request) -> Tuple[Optional[str], str]:
    message = request.session.pop("notice", None)
    kind = request.session.pop("notice_kind", "info")
    return message, kind


def notice_html(request: Request) -> str:
    message, kind = pop_notice(request)
    if not message:
        return ""
    css = "notice notice--error" if kind == "error" else "notice notice--success"
    return f"<div class='{css}'>{html_escape(message)}</div>"


def _safe_redirect(target: Optional[str], fallback: str = "/") -> str:
    candidate = (target or "").strip()
    if candidate == "/" or candidate.startswith("/accounts/"):
        return candidate
    return fallback


def base_styles() -> str:
    return """
    <style>
      :root{
        --bg:#0b1220; --card:#111827; --muted:#9aa4b2; --accent:#2563eb;
        --good:#16a34a; --bad:#dc2626; --text:#e5e7eb;
      }
      @media (prefers-color-scheme: light){
        :root{ --bg:#f7fafc; --card:#ffffff; --muted:#475569; --accent:#2563eb; --text:#0f172a; }
      }
      body{
        font-family: system-ui,-apple-system,Segoe UI,Roboto,Arial;
        background:var(--bg); color:var(--text);
        max-width:1200px; margin:0 auto; padding:24px 16px;
      }
      a{color:var(--accent);}
      .grid{display:grid; grid-template-columns:repeat(auto-fit, minmax(300px, 1fr)); gap:16px;}
      .card{background:var(--card); border-radius:12px; padding:16px; box-shadow:0 8px 20px rgba(0,0,0,.08); margin:12px 0;}
      label{display:flex; flex-direction:column; gap:4px; margin-bottom:10px; font-weight:600;}
      input,select{
        width:100%; padding:10px; border:1px solid #2b3545; border-radius:10px;
        background:#ffffff; color:#000000; box-sizing:border-box; font-size:16px;
      }
      button{padding:10px 14px; border-radius:10px; border:0; background:var(--accent); color:#fff; cursor:pointer; min-height:40px;}
      table{width:100%; border-collapse:collapse}
      th,td{padding:10px; border-bottom:1px solid #243041; text-align:left; vertical-align:top}
      .right{text-align:right}
      .muted{color:var(--muted)}
      .pill{display:inline-block; padding:4px 8px; border-radius:999px; background:#1f2937; color:#cbd5e1; font-size:12px}
      .notice{padding:12px 14px; border-radius:10px; margin:12px 0; font-weight:600;}
      .notice--error{background:rgba(220,38,38,0.15); color:#f87171;}
      .notice--success{background:rgba(22,163,74,0.15); color:#4ade80;}
      .summary-grid{display:grid; grid-template-columns:repeat(auto-fit,minmax(180px,1fr)); gap:12px;}
      .summary-card__label{font-size:13px; color:var(--muted); text-transform:uppercase; letter-spacing:0.04em;}
      .summary-card__value{font-size:22px; font-weight:700; margin-top:4px;}
      .text-good{color:#22c55e;}
      .text-bad{color:#f97316;}
    </style>
    """


def frame(title: str, inner: str) -> str:
    nav = "<p><a href='/'>Accounts</a> · <a href='/calculator'>Savings calculator</a></p>"
    return (
        "<html><head><meta charset='utf-8'><meta name='viewport' "
        f"content='width=device-width,initial-scale=1'><title>{html_escape(title)}</title>"
        f"{base_styles()}</head><body>{nav}{inner}</body></html>"
    )


def render_page(title: str, inner: str, *, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(frame(title, inner), status_code=status_code)


def _options(pairs: Iterable[Tuple[str, str]], placeholder: str) -> str:
    rows = [f"<option value=''>{html_escape(placeholder)}</option>"]
    rows.extend(
        f"<option value='{html_escape(value)}'>{html_escape(label)}</option>" for value, label in pairs
    )
    return "".join(rows)


def _account_choices(kids: Iterable[KidOverview], *, market_only: bool = False) -> list[Tuple[str, str]]:
    return [
        (overview.account.id, f"{entry.kid.name} - {overview.account.name}")
        for entry in kids
        for overview in entry.accounts
        if not market_only or overview.account.kind.is_market
    ]


def _shares(value: float) -> str:
    return f"{value:,.4f}"


def _price(value: float) -> str:
    return f"${value:,.2f}"


def _signed_class(cents: int) -> str:
    if cents > 0:
        return "text-good"
    if cents < 0:
        return "text-bad"
    return ""


# ---------------------------------------------------------------------------
# Home page
# ---------------------------------------------------------------------------
def _kids_table(kids: Tuple[KidOverview, ...]) -> str:
    if not kids:
        return "<p class='muted'>No kids yet. Create your first kid and account above.</p>"
    blocks = []
    for entry in kids:
        if not entry.accounts:
            blocks.append(f"<h3>{html_escape(entry.kid.name)}</h3><p class='muted'>No accounts yet.</p>")
            continue
        rows = []
        for overview in entry.accounts:
            account = overview.account
            if account.kind.is_market:
                ticker = html_escape(overview.current_ticker) if overview.current_ticker else "—"
            else:
                ticker = "N/A"
            rows.append(
                "<tr>"
                f"<td>{html_escape(account.name)}</td>"
                f"<td><span class='pill'>{account.kind.label}</span></td>"
                f"<td>{ticker}</td>"
                f"<td class='right'>{format_amount(overview.balance_cents)}</td>"
                f"<td><a href='/accounts/{html_escape(account.id)}'>Open</a></td>"
                "</tr>"
            )
        blocks.append(
            f"<h3>{html_escape(entry.kid.name)}</h3>"
            "<table><thead><tr><th>Account</th><th>Type</th><th>Current Ticker</th>"
            "<th class='right'>Balance</th><th>Details</th></tr></thead>"
            f"<tbody>{''.join(rows)}</tbody></table>"
        )
    return "".join(blocks)


@app.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    kids = build_service().list_kids()
    kid_options = _options(((entry.kid.id, entry.kid.name) for entry in kids), "Select a kid")
    account_choices = _account_choices(kids)
    account_options = _options(account_choices, "Select account")
    market_options = _options(_account_choices(kids, market_only=True), "Select market account")
    kind_options = "".join(f"<option value='{kind.value}'>{kind.label}</option>" for kind in AccountKind)
    direction_options = "".join(
        f"<option value='{direction.value}'>{direction.label}</option>" for direction in TransactionDirection
    )
    inner = f"""
    <h1>{html_escape(APP_TITLE)}</h1>
    <p class='muted'>Track separate kid accounts, backdated deposits/withdrawals, transfers and market ticker changes.</p>
    {notice_html(request)}
    <section class='grid'>
      <div class='card'>
        <h2>Add Kid</h2>
        <form method='post' action='/kids'>
          <label>Kid name<input name='name' placeholder='Avery' required></label>
          <button type='submit'>Create kid</button>
        </form>
      </div>
      <div class='card'>
        <h2>Add Account</h2>
        <form method='post' action='/accounts'>
          <label>Kid<select name='kid_id' required>{kid_options}</select></label>
          <label>Account name<input name='name' placeholder='Allowance Savings' required></label>
          <label>Type<select name='type' required>{kind_options}</select></label>
          <button type='submit'>Create account</button>
        </form>
      </div>
      <div class='card'>
        <h2>Add Deposit / Withdrawal</h2>
        <form method='post' action='/transactions'>
          <label>Account<select name='account_id' required>{account_options}</select></label>
          <label>Type<select name='type' required>{direction_options}</select></label>
          <label>Amount (USD)<input name='amount' type='number' min='0.01' step='0.01' required></label>
          <label>Date (supports backdating)<input name='occurred_at' type='date' required></label>
          <label>Note (optional)<input name='note' placeholder='Birthday gift'></label>
          <button type='submit'>Save transaction</button>
        </form>
      </div>
      <div class='card'>
        <h2>Transfer Between Accounts</h2>
        <form method='post' action='/transfers'>
          <label>From<select name='from_account_id' required>{account_options}</select></label>
          <label>To<select name='to_account_id' required>{account_options}</select></label>
          <label>Amount (USD)<input name='amount' type='number' min='0.01' step='0.01' required></label>
          <label>Date<input name='occurred_at' type='date' required></label>
          <label>Note (optional)<input name='note' placeholder='Move savings'></label>
          <button type='submit'>Transfer</button>
        </form>
      </div>
      <div class='card'>
        <h2>Update Market Ticker</h2>
        <form method='post' action='/tickers'>
          <label>Market account<select name='account_id' required>{market_options}</select></label>
          <label>Ticker<input name='ticker' placeholder='VOO' maxlength='10' required></label>
          <label>Effective date<input name='effective_date' type='date' required></label>
          <button type='submit'>Save ticker event</button>
        </form>
      </div>
    </section>
    <section class='card'>
      <h2>Kids and Accounts</h2>
      {_kids_table(kids)}
    </section>
    """
    return render_page(APP_TITLE, inner)


# ---------------------------------------------------------------------------
# Form actions
# ---------------------------------------------------------------------------
def _reject(request: Request, exc: KidBrokerageError, target: str) -> RedirectResponse:
    event_log.log("write_rejected", path=request.url.path, error=type(exc).__name__, message=str(exc))
    set_notice(request, str(exc), "error")
    return RedirectResponse(target, status_code=302)


def _done(request: Request, message: str, target: str) -> RedirectResponse:
    set_notice(request, message, "success")
    return RedirectResponse(target, status_code=302)


@app.post("/kids")
def create_kid(request: Request, name: str = Form("")):
    try:
        kid = build_service().create_kid(name)
    except KidBrokerageError as exc:
        return _reject(request, exc, "/")
    return _done(request, f"Created kid {kid.name}.", "/")


@app.post("/accounts")
def create_account(request: Request, kid_id: str = Form(""), name: str = Form(""), type: str = Form("")):
    try:
        account = build_service().create_account(kid_id, name, type)
    except KidBrokerageError as exc:
        return _reject(request, exc, "/")
    return _done(request, f"Created {account.kind.label.lower()} account {account.name}.", "/")


@app.post("/transactions")
def add_transaction(
    request: Request,
    account_id: str = Form(""),
    type: str = Form(""),
    amount: str = Form(""),
    occurred_at: str = Form(""),
    note: str = Form(""),
    return_to: Optional[str] = Form(None),
):
    target = _safe_redirect(return_to)
    try:
        transaction = build_service().add_transaction(account_id, type, amount, occurred_at, note)
    except KidBrokerageError as exc:
        return _reject(request, exc, target)
    return _done(
        request,
        f"Saved {transaction.direction.label.lower()} of {format_amount(transaction.amount_cents)}.",
        target,
    )


@app.post("/transfers")
def transfer_funds(
    request: Request,
    from_account_id: str = Form(""),
    to_account_id: str = Form(""),
    amount: str = Form(""),
    occurred_at: str = Form(""),
    note: str = Form(""),
    return_to: Optional[str] = Form(None),
):
    target = _safe_redirect(return_to)
    try:
        result = build_service().transfer_funds(from_account_id, to_account_id, amount, occurred_at, note)
    except KidBrokerageError as exc:
        return _reject(request, exc, target)
    return _done(request, f"Transferred {format_amount(result.deposit.amount_cents)}.", target)


@app.post("/tickers")
def set_market_ticker(
    request: Request,
    account_id: str = Form(""),
    ticker: str = Form(""),
    effective_date: str = Form(""),
    return_to: Optional[str] = Form(None),
):
    target = _safe_redirect(return_to)
    try:
        event = build_service().set_market_ticker(account_id, ticker, effective_date)
    except KidBrokerageError as exc:
        return _reject(request, exc, target)
    return _done(request, f"Ticker set to {event.ticker} from {event.effective_date.isoformat()}.", target)


# ---------------------------------------------------------------------------
# Account detail
# ---------------------------------------------------------------------------
def _market_card(detail: AccountDetail) -> str:
    summary: Optional[MarketSummary] = detail.market
    if summary is None:
        return (
            "<section class='card'><h2>Market summary</h2>"
            "<p class='muted'>Set a ticker to see market value.</p></section>"
        )
    position = summary.position
    cells = [
        ("Ticker", html_escape(summary.ticker), ""),
        ("Shares held", _shares(position.total_shares), ""),
        ("Cost basis", format_amount(position.cost_basis_cents), ""),
    ]
    if summary.price is None or summary.valuation is None:
        cells.append(("Current price", "Price unavailable", "muted"))
    else:
        valuation = summary.valuation
        tone = _signed_class(valuation.gain_loss_cents)
        cells.extend(
            [
                ("Current price", _price(summary.price), ""),
                ("Market value", format_amount(valuation.market_value_cents), ""),
                (
                    "Gain / loss",
                    f"{format_amount(valuation.gain_loss_cents)} ({valuation.gain_loss_percent:.2f}%)",
                    tone,
                ),
            ]
        )
    cards = "".join(
        f"<div><div class='summary-card__label'>{label}</div>"
        f"<div class='summary-card__value {css}'>{value}</div></div>"
        for label, value, css in cells
    )
    return f"<section class='card'><h2>Market summary</h2><div class='summary-grid'>{cards}</div></section>"


def _transactions_table(detail: AccountDetail) -> str:
    if not detail.transactions:
        return "<p class='muted'>No transactions yet.</p>"
    market = detail.account.kind.is_market
    header = "<th>Date</th><th>Type</th><th class='right'>Amount</th>"
    if market:
        header += "<th class='right'>Shares</th><th class='right'>Price</th>"
    header += "<th>Note</th>"
    rows = []
    for tx in detail.transactions:
        cells = (
            f"<td>{tx.occurred_on.isoformat()}</td>"
            f"<td>{tx.direction.label}</td>"
            f"<td class='right'>{format_amount(tx.signed_amount_cents)}</td>"
        )
        if market:
            if tx.fill is not None:
                cells += f"<td class='right'>{_shares(tx.signed_shares)}</td><td class='right'>{_price(tx.fill.price)}</td>"
            else:
                cells += "<td class='right'>—</td><td class='right'>—</td>"
        cells += f"<td>{html_escape(tx.note) if tx.note else '—'}</td>"
        rows.append(f"<tr>{cells}</tr>")
    return f"<table><thead><tr>{header}</tr></thead><tbody>{''.join(rows)}</tbody></table>"


def _ticker_history(detail: AccountDetail) -> str:
    if not detail.ticker_events:
        body = "<p class='muted'>No ticker history yet.</p>"
    else:
        rows = "".join(
            f"<tr><td>{event.effective_date.isoformat()}</td><td>{html_escape(event.ticker)}</td></tr>"
            for event in detail.ticker_events
        )
        body = (
            "<table><thead><tr><th>Effective date</th><th>Ticker</th></tr></thead>"
            f"<tbody>{rows}</tbody></table>"
        )
    return f"<section class='card'><h2>Ticker history</h2>{body}</section>"


def _detail_forms(detail: AccountDetail) -> str:
    account = detail.account
    account_id = html_escape(account.id)
    back = f"<input type='hidden' name='return_to' value='/accounts/{account_id}'>"
    direction_options = "".join(
        f"<option value='{direction.value}'>{direction.label}</option>" for direction in TransactionDirection
    )
    forms = [
        f"""
      <div class='card'>
        <h2>Add Deposit / Withdrawal</h2>
        <form method='post' action='/transactions'>
          <input type='hidden' name='account_id' value='{account_id}'>{back}
          <label>Type<select name='type' required>{direction_options}</select></label>
          <label>Amount (USD)<input name='amount' type='number' min='0.01' step='0.01' required></label>
          <label>Date (supports backdating)<input name='occurred_at' type='date' required></label>
          <label>Note (optional)<input name='note'></label>
          <button type='submit'>Save transaction</button>
        </form>
      </div>"""
    ]
    if account.kind.is_market:
        forms.append(
            f"""
      <div class='card'>
        <h2>Update Market Ticker</h2>
        <form method='post' action='/tickers'>
          <input type='hidden' name='account_id' value='{account_id}'>{back}
          <label>Ticker<input name='ticker' placeholder='VOO' maxlength='10' required></label>
          <label>Effective date<input name='effective_date' type='date' required></label>
          <button type='submit'>Save ticker event</button>
        </form>
      </div>"""
        )
    return f"<section class='grid'>{''.join(forms)}</section>"


@app.get("/accounts/{account_id}", response_class=HTMLResponse)
def account_detail(request: Request, account_id: str) -> HTMLResponse:
    try:
        detail = build_service().account_detail(account_id)
    except NotFoundError:
        inner = "<div class='card'><h2>Account not found</h2><p><a href='/'>← Back</a></p></div>"
        return render_page("Not found", inner, status_code=404)
    account = detail.account
    market_sections = ""
    if account.kind.is_market:
        market_sections = _market_card(detail) + _ticker_history(detail)
    inner = f"""
    <p><a href='/'>← Back</a></p>
    <h1>{html_escape(account.name)}</h1>
    <p>{html_escape(detail.kid.name)} · {account.kind.label} · Balance {format_amount(detail.balance_cents)}</p>
    {notice_html(request)}
    {market_sections}
    {_detail_forms(detail)}
    <section class='card'>
      <h2>Transactions</h2>
      {_transactions_table(detail)}
    </section>
    """
    return render_page(f"{account.name} — {APP_TITLE}", inner)


@app.get("/api/accounts/{account_id}")
def account_snapshot(account_id: str) -> JSONResponse:
    try:
        detail = build_service().account_detail(account_id)
    except NotFoundError as exc:
        return JSONResponse({"detail": str(exc)}, status_code=404)
    return JSONResponse(exporter.account_snapshot(detail))


# ---------------------------------------------------------------------------
# Savings calculator
# ---------------------------------------------------------------------------
def _calculator_page(
    *,
    weekly_deposit: str = "10.00",
    annual_return: str = "7",
    years: str = "10",
    projection: Optional[SavingsProjection] = None,
    error: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    result = ""
    if error:
        result = f"<div class='notice notice--error'>{html_escape(error)}</div>"
    elif projection is not None:
        result = (
            "<div class='card'>"
            f"<p>After <strong>{html_escape(years)} years</strong>, your account could be worth "
            f"<strong>{format_amount(projection.balance_cents)}</strong>.</p>"
            f"<p class='muted'>Total deposits: {format_amount(projection.invested_cents)} · "
            f"Investment growth: {format_amount(projection.growth_cents)}</p>"
            "</div>"
        )
    inner = f"""
    <h1>Savings calculator</h1>
    <div class='card'>
      <form method='post' action='/calculator'>
        <label>Weekly deposit (USD)<input name='weekly_deposit' type='number' min='0.01' step='0.01' value='{html_escape(weekly_deposit)}' required></label>
        <label>Annual return (%)<input name='annual_return' type='number' step='0.1' value='{html_escape(annual_return)}' required></label>
        <label>Years<input name='years' type='number' min='1' step='1' value='{html_escape(years)}' required></label>
        <button type='submit'>Calculate</button>
      </form>
    </div>
    {result}
    """
    return render_page(f"Savings calculator — {APP_TITLE}", inner, status_code=status_code)


@app.get("/calculator", response_class=HTMLResponse)
def calculator_form() -> HTMLResponse:
    return _calculator_page(weekly_deposit=format_amount_numeric(1000))


@app.post("/calculator", response_class=HTMLResponse)
def calculator_submit(
    weekly_deposit: str = Form(""),
    annual_return: str = Form(""),
    years: str = Form(""),
) -> HTMLResponse:
    try:
        projection = project_weekly_savings(
            parse_amount(must(weekly_deposit, "Weekly deposit")),
            parse_number(must(annual_return, "Annual return"), "Annual return"),
            parse_number(must(years, "Years"), "Years"),
        )
    except ValidationError as exc:
        return _calculator_page(
            weekly_deposit=weekly_deposit,
            annual_return=annual_return,
            years=years,
            error=str(exc),
            status_code=400,
        )
    return _calculator_page(
        weekly_deposit=weekly_deposit,
        annual_return=annual_return,
        years=years,
        projection=projection,
    )


__all__ = [
    "app",
    "build_service",
    "event_log",
    "exporter",
    "pop_notice",
    "price_oracle",
    "render_page",
    "set_notice",
]
