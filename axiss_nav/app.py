# axiss_nav/app.py

import json
import time
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from fastapi import FastAPI, Request, Depends, HTTPException, UploadFile, File, Form
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ConfigDict
from starlette.middleware.sessions import SessionMiddleware

from sqlalchemy import select, func, or_, and_
from sqlalchemy.orm import Session, selectinload

from axiss_nav import config
from axiss_nav.ai import analyze_url, is_ai_available, current_provider, AIUnavailableError
from axiss_nav.cache import cache, cached, cleanup_loop
from axiss_nav.crud import find_active_link_by_url, upsert_tags, get_or_create_category, import_cleaned_links
from axiss_nav.db import get_db, init_db, now_utc, check_connection
from axiss_nav.emoji_matcher import match_tag_emoji, batch_match_tag_emojis
from axiss_nav.models import User, Link, Tag, Category, link_tags, ROLE_ADMIN, ROLE_USER
from axiss_nav.ranking import recommend, pick_random, pick_random_tags
from axiss_nav.security import (
    get_current_user, require_admin, hash_password, verify_password, is_valid_email,
    find_user_by_login, new_api_key, MIN_PASSWORD_LEN,
)
from axiss_nav.transfer import (
    export_json, export_markdown, export_filename, parse_import, prepare_import,
    ImportFormatError, FORMATS,
)
from axiss_nav.utils import is_valid_url, fetch_website_info

logger = logging.getLogger("axiss_nav.app")

DEFAULT_DESCRIPTION = "暂无描述"
DEFAULT_TAGS = [
    {"name": "链接", "emoji": "🔗"},
    {"name": "收藏", "emoji": "⭐"},
]
PAGE_SIZE_DEFAULT = 20
PAGE_SIZE_MAX = 100

# ------------------------------------------------------------------------------
# FastAPI app
# ------------------------------------------------------------------------------
app = FastAPI(title=config.APP_TITLE)
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY, same_site="lax", https_only=False)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.BASE_URL, "http://localhost:8000", "http://127.0.0.1:8000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_timing(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
    logger.info("%s %s -> %s (%.2fms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"detail": "internal server error"}, status_code=500)


@app.on_event("startup")
async def on_startup():
    config.configure_logging()
    init_db()
    app.state.cache_cleanup = asyncio.create_task(cleanup_loop(cache, config.CACHE_CLEANUP_INTERVAL_SEC))
    logger.info("%s started (ai provider: %s)", config.APP_TITLE, current_provider() or "none")


@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "cache_cleanup", None)
    if task is not None:
        task.cancel()


# ------------------------------------------------------------------------------
# Request bodies
# ------------------------------------------------------------------------------
class Credentials(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class LoginBody(BaseModel):
    username: str = ""
    password: str = ""


class LinkBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None
    tags: Optional[List[str]] = None
    category_id: Optional[int] = Field(default=None, alias="categoryId")


class LinkRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    link_id: Optional[int] = Field(default=None, alias="linkId")


class AnalyzeBody(BaseModel):
    url: str = ""


class CategoryBody(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None


class EmojiBody(BaseModel):
    tags: List[str] = []


# ------------------------------------------------------------------------------
# Serialization
# ------------------------------------------------------------------------------
def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def user_to_dict(user: User, include_key: bool = False) -> Dict[str, Any]:
    out = {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "created_at": _iso(user.created_at),
    }
    if include_key:
        out["api_key"] = user.api_key
    return out


def tag_to_dict(tag: Tag, count: Optional[int] = None) -> Dict[str, Any]:
    out = {"id": tag.id, "name": tag.name, "color": tag.color or None, "icon": tag.icon or match_tag_emoji(tag.name)}
    if count is not None:
        out["count"] = count
    return out


def link_to_dict(link: Link) -> Dict[str, Any]:
    return {
        "id": link.id,
        "title": link.title,
        "url": link.url,
        "description": link.description or "",
        "icon": link.icon or "",
        "color": link.color or "",
        "order": link.order or 0,
        "click_count": link.click_count or 0,
        "category_id": link.category_id,
        "category": link.category.name if link.category and link.category.is_active else None,
        "tags": [tag_to_dict(t) for t in link.tags if t.is_active],
        "created_at": _iso(link.created_at),
        "updated_at": _iso(link.updated_at),
    }


def category_to_dict(category: Category, link_count: Optional[int] = None) -> Dict[str, Any]:
    out = {
        "id": category.id,
        "name": category.name,
        "description": category.description or "",
        "icon": category.icon or "",
        "color": category.color or "",
        "order": category.order or 0,
        "created_at": _iso(category.created_at),
        "updated_at": _iso(category.updated_at),
    }
    if link_count is not None:
        out["link_count"] = link_count
    return out


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _active_links(user: User):
    return (
        select(Link)
        .where(and_(Link.user_id == user.id, Link.is_active.is_(True)))
        .options(selectinload(Link.tags), selectinload(Link.category))
    )


def _search_filter(stmt, q: str):
    like = f"%{q}%"
    return stmt.where(or_(Link.title.ilike(like), Link.url.ilike(like), Link.description.ilike(like)))


def get_owned_link(db: Session, user: User, link_id: Optional[int]) -> Link:
    if not link_id:
        raise HTTPException(400, "linkId required")
    link = db.get(Link, link_id)
    if not link or link.user_id != user.id or not link.is_active:
        raise HTTPException(404, "link not found")
    return link


def get_owned_category(db: Session, user: User, category_id: Optional[int]) -> Category:
    category = db.get(Category, category_id) if category_id else None
    if not category or category.user_id != user.id or not category.is_active:
        raise HTTPException(404, "category not found")
    return category


async def analyze_for_user(url: str) -> Dict[str, Any]:
    """Site info plus AI analysis, degrading to defaults when AI is off or fails."""
    info = await fetch_website_info(url)
    title, description, tags = info.title, DEFAULT_DESCRIPTION, [dict(t) for t in DEFAULT_TAGS]

    if is_ai_available():
        try:
            analysis = await cached(
                f"analysis:{url}",
                lambda: analyze_url(url, site_info=info),
                ttl=config.ANALYSIS_CACHE_TTL_SEC,
                should_cache=lambda a: not a.fallback,
            )
        except AIUnavailableError:
            logger.warning("AI provider disappeared while analyzing %s", url)
        else:
            title = analysis.title or info.title
            description = analysis.description or DEFAULT_DESCRIPTION
            if analysis.tags:
                tags = [{"name": t.name, "emoji": t.emoji or match_tag_emoji(t.name)} for t in analysis.tags]

    return {"title": title, "description": description, "icon": info.icon or "", "tags": tags}


# ------------------------------------------------------------------------------
# UI (inline HTML)
# ------------------------------------------------------------------------------
INDEX_HTML = ("""<!doctype html>
<html lang="zh">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>__APP_TITLE__</title>
<link rel="manifest" href="/manifest.webmanifest">
<style>
:root{--bg:#fff;--text:#111827;--muted:#6b7280;--border:#e5e7eb;--accent:#111827;--chip:#f3f4f6}
*{box-sizing:border-box}
body{margin:0;background:var(--bg);color:var(--text);font-family:ui-sans-serif,system-ui,-apple-system,"Segoe UI",Roboto,"Noto Sans SC",sans-serif}
.container{max-width:1080px;margin:0 auto;padding:24px}
header{display:flex;align-items:center;justify-content:space-between;margin-bottom:16px}
.brand{font-weight:700}
button,input{font:inherit;border:1px solid var(--border);border-radius:10px;padding:8px 12px;background:#fff;color:var(--text)}
button{cursor:pointer}
button.primary{background:var(--accent);color:#fff;border-color:var(--accent)}
.row{display:flex;gap:8px;align-items:center;flex-wrap:wrap}
#q{flex:1 1 280px}
#scroller{height:70vh;overflow:auto;margin-top:16px}
#grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(240px,1fr));gap:16px}
.card{border:1px solid var(--border);border-radius:14px;padding:12px;height:132px;overflow:hidden}
.card a{color:var(--accent);font-weight:600;text-decoration:none}
.card .desc{font-size:13px;color:#374151;margin:6px 0}
.tag{background:var(--chip);padding:2px 8px;border-radius:999px;font-size:12px;margin-right:4px}
#status{color:var(--muted);font-size:13px;text-align:center;padding:12px}
#login{display:none;max-width:360px;margin:48px auto}
#login input{width:100%;margin-bottom:8px}
</style>
</head>
<body>
<div class="container">
  <header>
    <div class="brand">__APP_TITLE__</div>
    <div class="row" id="auth"></div>
  </header>

  <form id="login">
    <input id="lu" placeholder="用户名或邮箱" autocomplete="username">
    <input id="lp" type="password" placeholder="密码" autocomplete="current-password">
    <button class="primary" type="submit">登录</button>
  </form>

  <div id="main" style="display:none">
    <div class="row">
      <input id="q" placeholder="搜索标题、网址或描述 ( / )" aria-label="Search">
      <input id="nu" placeholder="https://..." aria-label="New URL">
      <button id="add" class="primary">添加</button>
    </div>
    <div id="scroller"><div id="grid"></div><div id="status"></div></div>
  </div>
</div>
<script>
(function(){
  const PAGE_SIZE = 24, THRESHOLD = 200;
  let page = 0, hasMore = true, loading = false, search = '', seq = 0;
  const grid = document.getElementById('grid'), status = document.getElementById('status');
  const scroller = document.getElementById('scroller');
  const esc = (s)=>String(s||'').replace(/[&<>"]/g,c=>({'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;'}[c]));

  function card(it){
    const el = document.createElement('div'); el.className='card';
    const tags = (it.tags||[]).map(t=>`<span class="tag">${esc(t.icon)} ${esc(t.name)}</span>`).join('');
    el.innerHTML = `<a href="${esc(it.url)}" target="_blank" rel="noopener">${esc(it.title)}</a>
      <div class="desc">${esc(it.description)}</div><div>${tags}</div>`;
    el.querySelector('a').addEventListener('click', ()=>{
      fetch('/api/links/click',{method:'POST',headers:{'Content-Type':'application/json'},credentials:'include',body:JSON.stringify({linkId:it.id})});
    });
    return el;
  }

  async function loadMore(){
    if(loading || !hasMore) return;
    loading = true; status.textContent = '加载中...';
    const mine = seq, next = page + 1;
    try{
      const r = await fetch(`/api/links/page?page=${next}&page_size=${PAGE_SIZE}&search=${encodeURIComponent(search)}`,{credentials:'include'});
      if(r.status===401){ showLogin(); return; }
      const data = await r.json();
      if(mine !== seq) return;
      (data.data||[]).forEach(it=>grid.appendChild(card(it)));
      page = next; hasMore = data.hasMore;
    } finally {
      loading = false;
      status.textContent = hasMore ? '' : (grid.children.length ? '已显示全部内容' : '暂无链接');
    }
    checkBottom();
  }

  function checkBottom(){
    if(scroller.scrollHeight - scroller.scrollTop - scroller.clientHeight < THRESHOLD) loadMore();
  }

  function reset(term){
    seq++; search = term; page = 0; hasMore = true; loading = false;
    grid.innerHTML = ''; scroller.scrollTop = 0; loadMore();
  }

  function showLogin(){
    document.getElementById('login').style.display='block';
    document.getElementById('main').style.display='none';
  }

  async function start(){
    const r = await fetch('/api/auth/me',{credentials:'include'});
    if(!r.ok){ showLogin(); return; }
    const me = await r.json();
    document.getElementById('auth').innerHTML = `${esc(me.user.username)} <button id="logout">退出</button>`;
    document.getElementById('logout').onclick = async ()=>{ await fetch('/api/auth/logout',{method:'POST'}); location.reload(); };
    document.getElementById('main').style.display='block';
    reset('');
  }

  document.getElementById('login').addEventListener('submit', async (e)=>{
    e.preventDefault();
    const body = {username:document.getElementById('lu').value, password:document.getElementById('lp').value};
    const r = await fetch('/api/auth/login',{method:'POST',headers:{'Content-Type':'application/json'},credentials:'include',body:JSON.stringify(body)});
    if(r.ok){ document.getElementById('login').style.display='none'; start(); } else { alert('登录失败'); }
  });

  document.getElementById('add').onclick = async ()=>{
    const url = document.getElementById('nu').value.trim(); if(!url) return;
    const a = await fetch('/api/links/analyze',{method:'POST',headers:{'Content-Type':'application/json'},credentials:'include',body:JSON.stringify({url})});
    const info = await a.json();
    if(!a.ok){ alert(info.detail && info.detail.message || info.detail || '分析失败'); return; }
    const body = {url, title:info.title, description:info.description, icon:info.icon, tags:(info.tags||[]).map(t=>t.name)};
    const r = await fetch('/api/links',{method:'POST',headers:{'Content-Type':'application/json'},credentials:'include',body:JSON.stringify(body)});
    if(r.ok){ document.getElementById('nu').value=''; reset(search); }
  };

  let debounce;
  document.getElementById('q').addEventListener('input', (e)=>{
    clearTimeout(debounce); debounce = setTimeout(()=>reset(e.target.value.trim()), 250);
  });
  scroller.addEventListener('scroll', checkBottom);
  window.addEventListener('resize', checkBottom);
  window.addEventListener('keydown',(e)=>{
    if(e.key==='/' && document.activeElement.tagName!=='INPUT'){ e.preventDefault(); document.getElementById('q').focus(); }
  });
  start();
})();
</script>
</body>
</html>
""").replace("__APP_TITLE__", config.APP_TITLE)


@app.get("/", response_class=HTMLResponse)
async def index():
    return HTMLResponse(INDEX_HTML)


@app.get("/manifest.webmanifest")
async def manifest():
    return JSONResponse({
        "name": config.APP_TITLE,
        "short_name": config.APP_TITLE,
        "start_url": "/",
        "display": "standalone",
        "background_color": "#ffffff",
        "theme_color": "#111827",
        "icons": [],
    })


@app.get("/health")
def health():
    ok = check_connection()
    return JSONResponse({"ok": ok, "database": "up" if ok else "down"}, status_code=200 if ok else 503)


# ------------------------------------------------------------------------------
# Init + auth
# ------------------------------------------------------------------------------
def _has_admin(db: Session) -> bool:
    return db.execute(select(User.id).where(User.role == ROLE_ADMIN).limit(1)).first() is not None


def _login(request: Request, user: User) -> None:
    request.session.clear()
    request.session["user_id"] = user.id


@app.get("/api/init/check")
def init_check(db: Session = Depends(get_db)):
    has_admin = _has_admin(db)
    return {"hasAdmin": has_admin, "needsInitialization": not has_admin}


@app.post("/api/init/admin")
def init_admin(data: Credentials, request: Request, db: Session = Depends(get_db)):
    if _has_admin(db):
        raise HTTPException(400, "admin account already exists")
    username, email = data.username.strip(), data.email.strip()
    if not username or not email or not data.password:
        raise HTTPException(400, "username, email and password are required")
    if len(data.password) < MIN_PASSWORD_LEN:
        raise HTTPException(400, f"password must be at least {MIN_PASSWORD_LEN} characters")
    if not is_valid_email(email):
        raise HTTPException(400, "invalid email address")
    if find_user_by_login(db, username) or find_user_by_login(db, email):
        raise HTTPException(400, "username or email already exists")

    admin = User(username=username, email=email, password_hash=hash_password(data.password),
                 role=ROLE_ADMIN, api_key=new_api_key())
    db.add(admin)
    db.commit()
    db.refresh(admin)
    _login(request, admin)
    logger.info("admin account %s created", admin.username)
    return {"message": "admin account created", "user": user_to_dict(admin, include_key=True)}


@app.post("/api/auth/register")
def register(data: Credentials, request: Request, db: Session = Depends(get_db)):
    username, email = data.username.strip(), data.email.strip()
    if not username or not email or not data.password:
        raise HTTPException(400, "username, email and password are required")
    if len(data.password) < MIN_PASSWORD_LEN:
        raise HTTPException(400, f"password must be at least {MIN_PASSWORD_LEN} characters")
    if not is_valid_email(email):
        raise HTTPException(400, "invalid email address")
    exists = db.execute(
        select(User.id).where(or_(User.username == username, User.email == email))
    ).first()
    if exists:
        raise HTTPException(409, "username or email already exists")

    user = User(username=username, email=email, password_hash=hash_password(data.password),
                role=ROLE_USER, api_key=new_api_key())
    db.add(user)
    db.commit()
    db.refresh(user)
    _login(request, user)
    return {"message": "registered", "user": user_to_dict(user, include_key=True)}


@app.post("/api/auth/login")
def login(data: LoginBody, request: Request, db: Session = Depends(get_db)):
    if not data.username or not data.password:
        raise HTTPException(400, "username and password are required")
    user = find_user_by_login(db, data.username.strip())
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(401, "invalid username or password")
    _login(request, user)
    return {"message": "logged in", "user": user_to_dict(user, include_key=True)}


@app.post("/api/auth/logout")
async def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@app.get("/api/auth/me")
async def me(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user, include_key=True)}


@app.get("/api/admin/status")
def admin_status(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    counts = {
        "users": db.scalar(select(func.count(User.id))),
        "links": db.scalar(select(func.count(Link.id)).where(Link.is_active.is_(True))),
        "tags": db.scalar(select(func.count(Tag.id)).where(Tag.is_active.is_(True))),
        "categories": db.scalar(select(func.count(Category.id)).where(Category.is_active.is_(True))),
    }
    return {
        "database": "up" if check_connection() else "down",
        "ai_provider": current_provider(),
        "cache": cache.stats(),
        "counts": counts,
    }


# ------------------------------------------------------------------------------
# Links
# ------------------------------------------------------------------------------
@app.get("/api/links")
def list_links(
    q: str = "",
    tag: str = "",
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    stmt = _active_links(user)
    q = (q or "").strip()
    if q:
        stmt = _search_filter(stmt, q)
    tag = (tag or "").strip()
    if tag:
        stmt = stmt.join(link_tags, link_tags.c.link_id == Link.id).join(Tag, Tag.id == link_tags.c.tag_id)
        stmt = stmt.where(and_(Tag.name == tag, Tag.is_active.is_(True)))
    if category_id is not None:
        stmt = stmt.where(Link.category_id == category_id)
    stmt = stmt.order_by(Link.order.asc(), Link.created_at.desc())
    return [link_to_dict(l) for l in db.execute(stmt).scalars().unique().all()]


@app.get("/api/links/page")
def page_links(
    page: int = 1,
    page_size: int = PAGE_SIZE_DEFAULT,
    search: str = "",
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    page = max(1, page)
    page_size = max(1, min(page_size, PAGE_SIZE_MAX))
    base = select(Link.id).where(and_(Link.user_id == user.id, Link.is_active.is_(True)))
    stmt = _active_links(user)
    search = (search or "").strip()
    if search:
        base = _search_filter(base, search)
        stmt = _search_filter(stmt, search)

    total = db.scalar(select(func.count()).select_from(base.subquery())) or 0
    rows = db.execute(
        stmt.order_by(Link.order.asc(), Link.created_at.desc(), Link.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).scalars().all()
    return {
        "data": [link_to_dict(l) for l in rows],
        "page": page,
        "total": total,
        "hasMore": page * page_size < total,
    }


@app.post("/api/links")
def create_link(data: LinkBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    title = (data.title or "").strip()
    url = (data.url or "").strip()
    if not title or not url:
        raise HTTPException(400, "title and url are required")
    if not is_valid_url(url):
        raise HTTPException(400, "url must start with http:// or https://")
    existing = find_active_link_by_url(db, user.id, url)
    if existing:
        raise HTTPException(409, {"message": "url already saved", "existingLink": {
            "id": existing.id, "title": existing.title, "url": existing.url}})

    category = get_owned_category(db, user, data.category_id) if data.category_id else None
    link = Link(
        user_id=user.id,
        title=title,
        url=url,
        description=(data.description or "").strip(),
        icon=(data.icon or "").strip(),
        color=(data.color or "").strip(),
        order=data.order or 0,
        category_id=category.id if category else None,
    )
    link.tags = upsert_tags(db, user, data.tags or [])
    db.add(link)
    db.commit()
    db.refresh(link)
    logger.info("user %s saved link %s", user.id, link.id)
    return link_to_dict(link)


@app.post("/api/links/analyze")
async def analyze_link(data: AnalyzeBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    url = (data.url or "").strip()
    if not url:
        raise HTTPException(400, "url is required")
    if not is_valid_url(url):
        raise HTTPException(400, "url must start with http:// or https://")
    existing = find_active_link_by_url(db, user.id, url)
    if existing:
        raise HTTPException(409, {"message": "url already saved", "existingLink": {
            "id": existing.id, "title": existing.title, "url": existing.url}})
    return await analyze_for_user(url)


@app.post("/api/links/reanalyze")
async def reanalyze_link(data: LinkRef, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    link = get_owned_link(db, user, data.link_id)
    result = await analyze_for_user(link.url)

    link.tags = upsert_tags(db, user, [t["name"] for t in result["tags"]],
                            emojis={t["name"]: t["emoji"] for t in result["tags"]})
    if result["description"] and result["description"] != DEFAULT_DESCRIPTION:
        link.description = result["description"]
    if not link.icon and result["icon"]:
        link.icon = result["icon"]
    link.updated_at = now_utc()
    db.commit()
    db.refresh(link)
    return {"success": True, "message": "reanalyzed", "link": link_to_dict(link)}


@app.post("/api/links/click")
def record_click(data: LinkRef, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    link = get_owned_link(db, user, data.link_id)
    link.click_count = Link.click_count + 1
    db.commit()
    db.refresh(link)
    return {"success": True, "click_count": link.click_count}


@app.get("/api/links/random")
def random_link(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = db.execute(
        select(Link.id, Link.url, Link.title).where(and_(Link.user_id == user.id, Link.is_active.is_(True)))
    ).all()
    picked = pick_random(rows)
    if picked is None:
        raise HTTPException(404, "no links yet")
    return {"data": {"id": picked.id, "url": picked.url, "title": picked.title}}


@app.get("/api/links/recommend")
def recommended_links(response: Response, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    links = db.execute(_active_links(user).order_by(Link.created_at.desc())).scalars().all()
    response.headers["Cache-Control"] = "public, max-age=600, s-maxage=1200"
    return {"data": [link_to_dict(l) for l in recommend(links)]}


@app.get("/api/links/export")
def export_links(format: str = "json", db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if format not in FORMATS:
        raise HTTPException(400, f"unsupported format: {format}")
    links = db.execute(_active_links(user).order_by(Link.order.asc(), Link.created_at.desc())).scalars().all()
    filename = export_filename(format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if format == "markdown":
        return Response(export_markdown(links), media_type="text/markdown; charset=utf-8", headers=headers)
    body = json.dumps(export_json(links), ensure_ascii=False, indent=2)
    return Response(body, media_type="application/json; charset=utf-8", headers=headers)


@app.post("/api/links/import")
async def import_links(
    file: Optional[UploadFile] = File(None),
    format: str = Form("json"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if file is None:
        raise HTTPException(400, "file is required")
    raw = await file.read()
    try:
        rows = parse_import(raw.decode("utf-8-sig"), format)
    except (ImportFormatError, UnicodeDecodeError) as e:
        raise HTTPException(400, str(e))

    existing = db.execute(
        select(Link.url).where(and_(Link.user_id == user.id, Link.is_active.is_(True)))
    ).scalars().all()
    valid, errors = prepare_import(rows, existing)
    imported = import_cleaned_links(db, user, valid)
    logger.info("user %s imported %d of %d link(s)", user.id, imported, len(rows))

    out: Dict[str, Any] = {"message": "import finished", "total": len(rows), "imported": imported}
    if errors:
        out["errors"] = errors
    return out


@app.get("/api/links/{link_id}")
def get_link(link_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return link_to_dict(get_owned_link(db, user, link_id))


@app.put("/api/links/{link_id}")
def update_link(link_id: int, data: LinkBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    link = get_owned_link(db, user, link_id)
    fields = data.model_dump(exclude_unset=True)

    if "url" in fields:
        url = (data.url or "").strip()
        if not is_valid_url(url):
            raise HTTPException(400, "url must start with http:// or https://")
        other = find_active_link_by_url(db, user.id, url)
        if other and other.id != link.id:
            raise HTTPException(409, "url already saved")
        link.url = url
    if "title" in fields:
        title = (data.title or "").strip()
        if not title:
            raise HTTPException(400, "title cannot be empty")
        link.title = title
    for attr in ("description", "icon", "color"):
        if attr in fields:
            setattr(link, attr, (fields[attr] or "").strip())
    if "order" in fields:
        link.order = data.order or 0
    if "category_id" in fields:
        link.category_id = get_owned_category(db, user, data.category_id).id if data.category_id else None
    if "tags" in fields:
        link.tags = upsert_tags(db, user, data.tags or [])

    link.updated_at = now_utc()
    db.commit()
    db.refresh(link)
    return link_to_dict(link)


@app.delete("/api/links/{link_id}")
def delete_link(link_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    link = get_owned_link(db, user, link_id)
    link.is_active = False
    link.updated_at = now_utc()
    db.commit()
    return {"ok": True}


# ------------------------------------------------------------------------------
# Tags
# ------------------------------------------------------------------------------
@app.get("/api/tags")
def random_tags(limit: int = 6, suggest: str = "", db: Session = Depends(get_db),
                user: User = Depends(get_current_user)):
    """
    A random sample of tags that are attached to at least one active link,
    with their link counts. `suggest` narrows to names starting with it.
    """
    limit = max(1, min(limit, 50))
    count = func.count(Link.id).label("count")
    stmt = (
        select(Tag, count)
        .join(link_tags, link_tags.c.tag_id == Tag.id)
        .join(Link, Link.id == link_tags.c.link_id)
        .where(and_(Tag.user_id == user.id, Tag.is_active.is_(True), Link.is_active.is_(True)))
        .group_by(Tag.id)
        .order_by(count.desc())
    )
    suggest = (suggest or "").strip()
    if suggest:
        stmt = stmt.where(Tag.name.ilike(f"{suggest}%"))
    rows = db.execute(stmt).all()
    picked = pick_random_tags(rows, limit)
    return {"data": [tag_to_dict(tag, count=n) for tag, n in picked]}


@app.post("/api/tags/emoji")
async def tag_emojis(data: EmojiBody):
    return {"data": batch_match_tag_emojis([str(t) for t in data.tags])}


# ------------------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------------------
def _active_category_named(db: Session, user: User, name: str, exclude_id: Optional[int] = None):
    stmt = select(Category).where(and_(Category.user_id == user.id, Category.name == name, Category.is_active.is_(True)))
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    return db.execute(stmt).scalars().first()


@app.get("/api/categories")
def list_categories(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    link_count = (
        select(func.count(Link.id))
        .where(and_(Link.category_id == Category.id, Link.is_active.is_(True)))
        .correlate(Category)
        .scalar_subquery()
    )
    rows = db.execute(
        select(Category, link_count)
        .where(and_(Category.user_id == user.id, Category.is_active.is_(True)))
        .order_by(Category.order.asc(), Category.id.asc())
    ).all()
    return [category_to_dict(c, link_count=n) for c, n in rows]


@app.post("/api/categories", status_code=201)
def create_category(data: CategoryBody, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    name = (data.name or "").strip()
    if not name:
        raise HTTPException(400, "category name is required")
    if _active_category_named(db, user, name):
        raise HTTPException(409, "category name already exists")
    category = Category(
        user_id=user.id,
        name=name,
        description=(data.description or "").strip(),
        icon=(data.icon or "").strip(),
        color=(data.color or "").strip(),
        order=data.order or 0,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return {"message": "category created", "category": category_to_dict(category)}


@app.get("/api/categories/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    category = get_owned_category(db, user, category_id)
    links = db.execute(
        _active_links(user).where(Link.category_id == category.id).order_by(Link.order.asc())
    ).scalars().all()
    out = category_to_dict(category, link_count=len(links))
    out["links"] = [link_to_dict(l) for l in links]
    return out


@app.put("/api/categories/{category_id}")
def update_category(category_id: int, data: CategoryBody, db: Session = Depends(get_db),
                    user: User = Depends(get_current_user)):
    category = get_owned_category(db, user, category_id)
    fields = data.model_dump(exclude_unset=True)
    if "name" in fields:
        name = (data.name or "").strip()
        if not name:
            raise HTTPException(400, "category name cannot be empty")
        if name != category.name and _active_category_named(db, user, name, exclude_id=category.id):
            raise HTTPException(409, "category name already exists")
        category.name = name
    for attr in ("description", "icon", "color"):
        if attr in fields:
            setattr(category, attr, (fields[attr] or "").strip())
    if "order" in fields:
        category.order = data.order or 0
    category.updated_at = now_utc()
    db.commit()
    db.refresh(category)
    return {"message": "category updated", "category": category_to_dict(category)}


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    category = get_owned_category(db, user, category_id)
    category.is_active = False
    category.updated_at = now_utc()
    for link in db.execute(select(Link).where(Link.category_id == category.id)).scalars():
        link.category_id = None
    db.commit()
    return {"message": "category deleted"}
