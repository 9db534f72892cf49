#!/usr/bin/env python3
"""
Hive Intro Explorer v1.0 — Tag Feed + First Post Finder + Post Detail
======================================================================
Browses Hive discussion listings through condenser_api:
  ✅ Tag feed (#introduceyourself by default, empty tag = global) by created / hot / trending
  ✅ Cursor pagination with "load more" (per-visitor state, stale responses discarded)
  ✅ First post finder: walks an account's blog backwards to its oldest post
  ✅ Account profile with latest blog posts
  ✅ Post detail with markdown body and direct comments

Run:
  python app.py
Open:
  http://localhost:5000
"""

import os

from flask import Flask, render_template_string, jsonify, request, session

from hive_api import HIVE_API_NODE, HiveApiError, debug_log, log, request_stats
from feed_state import NoMorePages, SessionStore
from pager import (
    FIRST_POST_MAX_ROUNDS,
    FIRST_POST_PAGE_SIZE,
    MAX_PAGE_SIZE,
    fetch_blog,
    fetch_page,
    fetch_post_detail,
    find_first_post,
    get_account,
)
from posts import PageCursor, SortMode, filter_recent, truncate_body, unique_authors

app = Flask(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================
DEFAULT_TAG = os.environ.get("HIVE_DEFAULT_TAG", "introduceyourself")
DEFAULT_SORT = "created"
POSTS_PER_LOAD = 12

CARD_EXCERPT = 250
PROFILE_EXCERPT = 150

HOST = os.environ.get("HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", "5000"))

app.secret_key = os.environ.get("HIVE_SECRET_KEY", "hive-explorer-dev-key")

sessions = SessionStore()


# ============================================================================
# REQUEST HELPERS
# ============================================================================
def visitor_state():
    """FeedSession of the current browser, keyed by an id in the signed cookie."""
    sid = session.get("sid")
    if not sid:
        sid = SessionStore.new_id()
        session["sid"] = sid
    return sessions.get(sid)


def parse_feed_args():
    """Return ``(sort_mode, tag, limit, days)``; raises ValueError on bad input."""
    sort_mode = SortMode.parse(request.args.get("sort", DEFAULT_SORT))
    tag = request.args.get("tag", DEFAULT_TAG).strip().lower()
    limit = int_arg("limit", POSTS_PER_LOAD)
    if limit < 1:
        raise ValueError("limit must be a positive integer")
    limit = min(limit, MAX_PAGE_SIZE)
    return sort_mode, tag, limit, days_arg()


def int_arg(name, default):
    value = request.args.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer") from None


def days_arg():
    days = int_arg("days", 0)
    if days < 0:
        raise ValueError("days must not be negative")
    return days


def post_card(post, excerpt=CARD_EXCERPT):
    data = post.to_dict()
    data["excerpt"] = truncate_body(post.body, excerpt)
    data["truncated"] = len(data["excerpt"]) < len(post.body)
    return data


def bad_request(msg):
    return jsonify({"success": False, "error": msg, "_stats": request_stats}), 400


def upstream_error(e, what):
    log(f"{what} FAILED: {e}", "ERROR", {"error": str(e)[:240]})
    return jsonify({"success": False, "error": f"Failed to load {what.lower()}: {e}", "_stats": request_stats}), 502


def stale_response():
    return jsonify({"success": False, "stale": True, "error": "Superseded by a newer request", "_stats": request_stats}), 409


def feed_response(state, page, days):
    items = filter_recent(page.items, days) if days else page.items
    cursor = state.cursor
    return jsonify({
        "success": True,
        "posts": [post_card(p) for p in items],
        "has_more": state.has_more,
        "next_cursor": {"author": cursor.author, "permlink": cursor.permlink} if cursor else None,
        "sort": state.sort_mode.value,
        "tag": state.tag,
        "loaded": len(state.items),
        "unique_authors": unique_authors(state.items),
        "filtered_out": len(page.items) - len(items),
        "_stats": request_stats
    })


# ============================================================================
# HTML TEMPLATE
# ============================================================================
HTML_TEMPLATE = r'''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>🐝 Hive Intro Explorer</title>
    <link href="https://fonts.googleapis.com/css2?family=JetBrains+Mono:wght@400;600&family=Space+Grotesk:wght@400;500;600;700&display=swap" rel="stylesheet">
    <script src="https://cdn.jsdelivr.net/npm/marked/marked.min.js"></script>
    <script src="https://cdn.jsdelivr.net/npm/dompurify/dist/purify.min.js"></script>
    <style>
        :root {
            --bg: #0a0e17;
            --bg2: #111827;
            --card: rgba(17, 24, 39, 0.95);
            --hover: rgba(31, 41, 55, 0.95);
            --border: rgba(75, 85, 99, 0.5);
            --text: #f9fafb;
            --dim: #9ca3af;
            --muted: #6b7280;
            --hive: #e31337;
            --blue: #3b82f6;
            --green: #10b981;
            --red: #ef4444;
            --cyan: #06b6d4;
            --yellow: #eab308;
        }
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body {
            font-family: 'Space Grotesk', sans-serif;
            background: var(--bg);
            color: var(--text);
            min-height: 100vh;
            line-height: 1.5;
        }
        .container { max-width: 1400px; margin: 0 auto; padding: 12px; }

        header { text-align: center; padding: 12px 0; border-bottom: 1px solid var(--border); margin-bottom: 10px; }
        header h1 {
            font-size: 1.6em; font-weight: 700;
            background: linear-gradient(135deg, #e31337, #f97316);
            -webkit-background-clip: text; -webkit-text-fill-color: transparent;
        }
        .subtitle { color: var(--dim); font-size: 0.75em; margin-top: 2px; }

        .status-bar {
            display: flex; gap: 15px; justify-content: center; align-items: center;
            padding: 6px 12px; background: var(--card); border: 1px solid var(--border);
            border-radius: 6px; margin-bottom: 10px; font-size: 0.72em;
            font-family: 'JetBrains Mono', monospace;
        }
        .status-item { display: flex; align-items: center; gap: 4px; }
        .status-dot { width: 8px; height: 8px; border-radius: 50%; }
        .status-dot.ok { background: var(--green); }
        .status-dot.err { background: var(--red); }
        .status-dot.loading { background: var(--blue); animation: pulse 1s infinite; }
        @keyframes pulse { 0%, 100% { opacity: 1; } 50% { opacity: 0.4; } }

        .stats { display: flex; gap: 6px; margin-bottom: 10px; flex-wrap: wrap; }
        .stat {
            background: var(--card); border: 1px solid var(--border); border-radius: 6px;
            padding: 6px 10px; text-align: center; flex: 1; min-width: 70px;
        }
        .stat-val { font-size: 1em; font-weight: 700; font-family: 'JetBrains Mono', monospace; color: var(--cyan); }
        .stat-lbl { color: var(--muted); font-size: 0.6em; }

        .tabs {
            display: flex; flex-wrap: wrap; gap: 2px; background: var(--card);
            padding: 4px; border-radius: 8px; border: 1px solid var(--border); margin-bottom: 8px;
        }
        .tab {
            padding: 5px 9px; background: transparent; border: none; border-radius: 5px; cursor: pointer;
            color: var(--dim); font-family: inherit; font-weight: 500; font-size: 0.7em; transition: all 0.12s;
        }
        .tab:hover { background: var(--hover); color: var(--text); }
        .tab.active { background: linear-gradient(135deg, #e31337, #b91c1c); color: white; }

        .content { display: none; }
        .content.active { display: block; animation: fadeIn 0.15s; }
        @keyframes fadeIn { from { opacity: 0; } to { opacity: 1; } }

        .grid { display: grid; gap: 6px; grid-template-columns: repeat(auto-fill, minmax(320px, 1fr)); }

        .post-card {
            background: var(--card); border: 1px solid var(--border); border-radius: 8px;
            padding: 10px; cursor: pointer; transition: all 0.1s;
        }
        .post-card:hover { background: var(--hover); border-color: var(--hive); }
        .post-head { display: flex; align-items: center; gap: 6px; margin-bottom: 4px; }
        .avatar { width: 26px; height: 26px; border-radius: 50%; object-fit: cover; background: var(--bg2); }
        .author { color: var(--cyan); font-weight: 600; font-size: 0.75em; cursor: pointer; }
        .author:hover { text-decoration: underline; }
        .handle { color: var(--muted); font-size: 0.65em; }
        .post-title { font-weight: 600; font-size: 0.88em; margin-bottom: 3px; }
        .post-body { color: var(--dim); font-size: 0.75em; white-space: pre-wrap; word-break: break-word; }
        .post-foot { display: flex; gap: 10px; margin-top: 6px; color: var(--muted); font-size: 0.68em; flex-wrap: wrap; }
        .tag-pill { background: rgba(227,19,55,0.12); color: var(--hive); padding: 2px 6px; border-radius: 8px; }

        .search-row { display: flex; gap: 6px; margin-bottom: 8px; flex-wrap: wrap; }
        .search-row input, .search-row select {
            flex: 1; min-width: 120px; padding: 7px 10px; background: var(--card); border: 1px solid var(--border);
            border-radius: 6px; color: var(--text); font-family: inherit; font-size: 0.8em;
        }
        .search-row button, .btn {
            padding: 7px 14px; background: linear-gradient(135deg, #e31337, #b91c1c); border: none; border-radius: 6px;
            color: white; font-family: inherit; font-weight: 600; font-size: 0.78em; cursor: pointer;
        }
        .btn.sm { padding: 3px 8px; font-size: 0.7em; }
        .btn:disabled { opacity: 0.5; cursor: default; }
        .more-btn { display: none; width: 100%; margin-top: 8px; }

        .banner { display: flex; gap: 6px; align-items: center; padding: 6px 10px; border-radius: 6px; font-size: 0.75em; margin-bottom: 8px; }
        .banner.info { background: rgba(59,130,246,0.1); border: 1px solid var(--blue); }
        .banner.warning { background: rgba(234,179,8,0.1); border: 1px solid var(--yellow); }
        #error-banner { display: none; background: rgba(239,68,68,0.12); border: 1px solid var(--red); }

        .loading, .empty { color: var(--muted); text-align: center; padding: 20px; font-size: 0.85em; }
        .error-state { text-align: center; padding: 20px; }
        .error-state .icon { font-size: 1.6em; }
        .error-state .msg { color: var(--red); margin: 6px 0 10px; font-size: 0.85em; }

        .profile-card { background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 12px; margin-bottom: 8px; display: flex; gap: 12px; align-items: center; }
        .profile-card img { width: 64px; height: 64px; border-radius: 50%; object-fit: cover; }
        .profile-name { font-weight: 700; font-size: 1.05em; }
        .profile-about { color: var(--dim); font-size: 0.78em; }
        .profile-stats { color: var(--muted); font-size: 0.7em; font-family: 'JetBrains Mono', monospace; margin-top: 3px; }

        .modal { position: fixed; inset: 0; background: rgba(0,0,0,0.75); display: flex; align-items: flex-start; justify-content: center; overflow-y: auto; padding: 30px 10px; z-index: 50; }
        .modal-box { background: var(--bg2); border: 1px solid var(--border); border-radius: 10px; max-width: 860px; width: 100%; padding: 16px; position: relative; }
        .modal-close { position: absolute; top: 8px; right: 10px; background: none; border: none; color: var(--dim); font-size: 1.4em; cursor: pointer; }
        .modal-title { font-size: 1.2em; font-weight: 700; margin-bottom: 6px; padding-right: 20px; }
        .modal-meta { display: flex; gap: 10px; align-items: center; flex-wrap: wrap; color: var(--muted); font-size: 0.75em; margin-bottom: 10px; }
        .markdown { font-size: 0.85em; line-height: 1.6; word-break: break-word; }
        .markdown img { max-width: 100%; }
        .markdown a { color: var(--cyan); }
        .markdown p, .markdown ul, .markdown ol, .markdown pre, .markdown blockquote { margin-bottom: 8px; }
        .markdown ul, .markdown ol { padding-left: 20px; }
        .comments-section { margin-top: 14px; border-top: 1px solid var(--border); padding-top: 8px; }
        .comments-section h4 { font-size: 0.85em; margin-bottom: 6px; }
        .comment { padding: 6px 0 6px 8px; border-left: 2px solid var(--border); margin-bottom: 6px; }
        .comment-author { color: var(--cyan); font-weight: 600; font-size: 0.75em; cursor: pointer; }
        .comment-meta { color: var(--muted); font-size: 0.68em; }
        .comment-text { font-size: 0.8em; margin-top: 2px; }

        .debug-box { background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 10px; }
        .debug-box h3 { font-size: 0.85em; margin-bottom: 6px; display: flex; justify-content: space-between; }
        .log-entry { font-family: 'JetBrains Mono', monospace; font-size: 0.68em; padding: 1px 0; }

        footer { text-align: center; color: var(--muted); font-size: 0.7em; padding: 16px 0; }
        footer a { color: var(--cyan); }
    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>🐝 Hive Intro Explorer</h1>
            <div class="subtitle">Discover new members of the Hive community through #''' + DEFAULT_TAG + '''</div>
        </header>

        <div class="status-bar">
            <div class="status-item"><span class="status-dot loading" id="status-dot"></span><span id="status-text">Starting...</span></div>
            <div class="status-item">✅ <span id="stat-ok">0</span></div>
            <div class="status-item">❌ <span id="stat-fail">0</span></div>
            <div class="status-item">⏱ <span id="stat-timeout">0</span></div>
        </div>

        <div class="banner" id="error-banner"><span>⚠️</span><span id="error-msg"></span></div>

        <div class="stats">
            <div class="stat"><div class="stat-val" id="s-posts">0</div><div class="stat-lbl">Posts loaded</div></div>
            <div class="stat"><div class="stat-val" id="s-authors">0</div><div class="stat-lbl">Unique authors</div></div>
            <div class="stat"><div class="stat-val" id="s-sort">created</div><div class="stat-lbl">Sort</div></div>
        </div>

        <div class="tabs">
            <button class="tab active" onclick="showTab('feed', this)">📰 Feed</button>
            <button class="tab" onclick="showTab('first', this)">🔎 First Post</button>
            <button class="tab" onclick="showTab('profile', this)">👤 Profile</button>
            <button class="tab" onclick="showTab('logs', this)">📜 Logs</button>
        </div>

        <div id="feed" class="content active">
            <div class="search-row">
                <select id="feed-sort" onchange="loadFeed()">
                    <option value="created">Newest</option>
                    <option value="hot">Most commented (hot)</option>
                    <option value="trending">Most voted (trending)</option>
                </select>
                <input type="text" id="feed-tag" value="''' + DEFAULT_TAG + '''" placeholder="tag (empty = all posts)">
                <select id="feed-days" onchange="loadFeed()">
                    <option value="0">Any age</option>
                    <option value="7">Last 7 days</option>
                </select>
                <button onclick="loadFeed()">Load</button>
            </div>
            <div class="grid" id="feed-grid"><div class="loading">Loading...</div></div>
            <button class="btn more-btn" id="feed-more" onclick="loadMore()">Load More</button>
        </div>

        <div id="first" class="content">
            <div class="banner info"><span>🔎</span><span>Walks the account's blog backwards (up to ''' + str(FIRST_POST_PAGE_SIZE * FIRST_POST_MAX_ROUNDS) + ''' entries) and shows the oldest post found.</span></div>
            <div class="search-row">
                <input type="text" id="first-q" placeholder="Hive username...">
                <button onclick="findFirstPost()">Search</button>
                <button onclick="clearSearch()">Clear</button>
            </div>
            <div id="first-results"></div>
        </div>

        <div id="profile" class="content">
            <div class="search-row">
                <input type="text" id="profile-q" placeholder="Hive username...">
                <button onclick="loadProfile()">View</button>
            </div>
            <div id="profile-results"></div>
        </div>

        <div id="logs" class="content">
            <div class="debug-box">
                <h3>📜 Logs <button class="btn sm" onclick="refreshLog()">Refresh</button></h3>
                <div id="log-content"></div>
            </div>
        </div>

        <div id="modal" class="modal" style="display:none;">
            <div class="modal-box">
                <button class="modal-close" onclick="closeModal()">×</button>
                <div id="modal-body"></div>
            </div>
        </div>

        <footer>🐝 v1.0 | node: ''' + HIVE_API_NODE + ''' | <a href="https://hive.blog" target="_blank">hive.blog</a></footer>
    </div>

    <script>
        let activeTab = 'feed';
        let feedSeq = 0;
        let searchSeq = 0;
        let postSeq = 0;
        let profileSeq = 0;

        // ========================================================================
        // UTILITIES
        // ========================================================================
        function esc(t) { if (t == null) return ''; const d = document.createElement('div'); d.textContent = String(t); return d.innerHTML; }
        function fmtDate(s) {
            if (!s) return '';
            const d = new Date(s.endsWith('Z') ? s : s + 'Z');
            return isNaN(d) ? s : d.toLocaleString(undefined, { day: '2-digit', month: '2-digit', year: 'numeric', hour: '2-digit', minute: '2-digit' });
        }
        function renderMarkdown(md) {
            const html = (window.marked ? marked.parse(md || '') : esc(md));
            return window.DOMPurify ? DOMPurify.sanitize(html) : esc(md);
        }

        function setStatus(status, text) {
            const dot = document.getElementById('status-dot');
            document.getElementById('status-text').textContent = text;
            dot.className = 'status-dot ' + status;
        }

        function updateStats(stats) {
            if (stats) {
                document.getElementById('stat-ok').textContent = stats.success || 0;
                document.getElementById('stat-fail').textContent = stats.failed || 0;
                document.getElementById('stat-timeout').textContent = stats.timeouts || 0;
            }
        }

        function showErr(msg) {
            document.getElementById('error-banner').style.display = 'flex';
            document.getElementById('error-msg').textContent = msg;
        }
        function hideErr() { document.getElementById('error-banner').style.display = 'none'; }

        function showTab(id, btnEl=null) {
            document.querySelectorAll('.content').forEach(c => c.classList.remove('active'));
            document.querySelectorAll('.tab').forEach(t => t.classList.remove('active'));
            document.getElementById(id).classList.add('active');
            if (btnEl) btnEl.classList.add('active');
            activeTab = id;
            if (id === 'logs') refreshLog();
        }

        // ========================================================================
        // RENDER FUNCTIONS
        // ========================================================================
        function renderPost(p, showTag = true) {
            const tag = document.getElementById('feed-tag').value.trim();
            return `
                <div class="post-card" onclick='openPost(${JSON.stringify(p.author)}, ${JSON.stringify(p.permlink)})'>
                    <div class="post-head">
                        <img class="avatar" src="${esc(p.author_avatar_url)}" alt="" onerror="this.style.visibility='hidden'">
                        <span class="author" onclick='event.stopPropagation(); openProfile(${JSON.stringify(p.author)})'>${esc(p.author_display_name)}</span>
                        <span class="handle">@${esc(p.author)}</span>
                    </div>
                    <div class="post-title">${esc(p.title) || 'Untitled'}</div>
                    <div class="post-body">${esc(p.excerpt)}</div>
                    <div class="post-foot">
                        <span>📅 ${esc(fmtDate(p.created))}</span>
                        <span>💬 ${p.replies || 0}</span>
                        <span>👍 ${p.vote_count || 0} (${(p.vote_weight || 0).toFixed(0)}%)</span>
                        <span>💰 ${esc(p.pending_payout_value)}</span>
                        ${showTag && tag ? `<span class="tag-pill">#${esc(tag)}</span>` : ''}
                    </div>
                </div>
            `;
        }

        function renderComment(c) {
            return `
                <div class="comment">
                    <span class="comment-author" onclick='closeModal(); openProfile(${JSON.stringify(c.author)})'>${esc(c.author_display_name)}</span>
                    <span class="comment-meta"> @${esc(c.author)} • ${esc(fmtDate(c.created))} • 👍 ${c.vote_count || 0} • 💬 ${c.replies || 0}</span>
                    <div class="comment-text markdown">${renderMarkdown(c.body)}</div>
                </div>
            `;
        }

        function renderProfile(a) {
            return `
                <div class="profile-card">
                    <img src="${esc(a.avatar_url)}" alt="" onerror="this.style.visibility='hidden'">
                    <div>
                        <div class="profile-name">${esc(a.display_name)} <span class="handle">@${esc(a.name)}</span></div>
                        <div class="profile-about">${esc(a.about) || 'No bio'}</div>
                        <div class="profile-stats">Reputation ${a.reputation} • ${a.post_count} posts • joined ${esc(fmtDate(a.created))}</div>
                    </div>
                </div>
            `;
        }

        function renderError(msg, retry = 'loadFeed()') {
            return `
                <div class="error-state">
                    <div class="icon">⚠️</div>
                    <div class="msg">${esc(msg)}</div>
                    ${retry ? `<button class="btn" onclick="${retry}">Retry</button>` : ''}
                </div>
            `;
        }

        // ========================================================================
        // FEED LOADING
        // ========================================================================
        let feedPosts = [];

        function feedQuery() {
            const sort = document.getElementById('feed-sort').value;
            const tag = encodeURIComponent(document.getElementById('feed-tag').value.trim());
            const days = document.getElementById('feed-days').value;
            return `sort=${sort}&tag=${tag}&limit=''' + str(POSTS_PER_LOAD) + '''&days=${days}`;
        }

        function applyFeed(d, append) {
            const el = document.getElementById('feed-grid');
            const moreBtn = document.getElementById('feed-more');
            feedPosts = append ? feedPosts.concat(d.posts) : d.posts;
            el.innerHTML = feedPosts.length ? feedPosts.map(p => renderPost(p)).join('') : '<div class="empty">No posts found</div>';
            moreBtn.style.display = d.has_more ? 'block' : 'none';
            moreBtn.disabled = false;
            moreBtn.textContent = `Load More (${d.loaded} loaded)`;
            document.getElementById('s-posts').textContent = d.loaded;
            document.getElementById('s-authors').textContent = d.unique_authors;
            document.getElementById('s-sort').textContent = d.sort;
        }

        async function requestFeed(url, append) {
            const seq = ++feedSeq;
            const el = document.getElementById('feed-grid');
            const moreBtn = document.getElementById('feed-more');
            if (!append) {
                el.innerHTML = '<div class="loading">Loading...</div>';
                moreBtn.style.display = 'none';
            } else {
                moreBtn.textContent = 'Loading...';
                moreBtn.disabled = true;
            }
            setStatus('loading', 'Loading posts...');

            try {
                const r = await fetch(url);
                const d = await r.json();
                if (seq !== feedSeq || d.stale) return;
                updateStats(d._stats);

                if (d.success) {
                    applyFeed(d, append);
                    setStatus('ok', `Loaded ${d.loaded} posts`);
                    hideErr();
                } else {
                    feedPosts = [];
                    el.innerHTML = renderError(d.error || 'Failed to load posts');
                    moreBtn.style.display = 'none';
                    setStatus('err', d.error || 'Failed');
                    showErr(d.error || 'Failed to load posts');
                }
            } catch (e) {
                if (seq !== feedSeq) return;
                feedPosts = [];
                el.innerHTML = renderError(e.message);
                moreBtn.style.display = 'none';
                setStatus('err', e.message);
                showErr(e.message);
            }
        }

        function loadFeed() { requestFeed(`/api/feed?${feedQuery()}`, false); }
        function loadMore() {
            const days = document.getElementById('feed-days').value;
            requestFeed(`/api/feed/more?days=${days}`, true);
        }

        // ========================================================================
        // FIRST POST
        // ========================================================================
        async function findFirstPost() {
            const q = document.getElementById('first-q').value.trim().replace(/^@/, '');
            const el = document.getElementById('first-results');
            if (!q) { el.innerHTML = ''; return; }
            const seq = ++searchSeq;
            el.innerHTML = '<div class="loading">Walking blog history...</div>';
            setStatus('loading', `Searching @${q}...`);

            try {
                const r = await fetch(`/api/first-post/${encodeURIComponent(q)}`);
                const d = await r.json();
                if (seq !== searchSeq || d.stale) return;
                updateStats(d._stats);
                if (d.success) {
                    const note = d.truncated
                        ? `<div class="banner warning"><span>⚠️</span><span>Scanned the latest ${d.scanned} entries only; older posts may exist.</span></div>`
                        : `<div class="banner info"><span>✅</span><span>First post of @${esc(q)} (searched ${d.scanned} posts)</span></div>`;
                    el.innerHTML = note + `<div class="grid">${renderPost(d.post, false)}</div>`;
                    setStatus('ok', `Found first post of @${q}`);
                } else if (d.not_found) {
                    el.innerHTML = `<div class="empty">No posts found for @${esc(q)}</div>`;
                    setStatus('ok', 'Nothing found');
                } else {
                    el.innerHTML = renderError(d.error || 'Search failed', 'findFirstPost()');
                    setStatus('err', d.error || 'Failed');
                }
            } catch (e) {
                if (seq !== searchSeq) return;
                el.innerHTML = renderError(e.message, 'findFirstPost()');
                setStatus('err', e.message);
            }
        }

        async function clearSearch() {
            ++searchSeq;
            document.getElementById('first-q').value = '';
            document.getElementById('first-results').innerHTML = '';
            try { await fetch('/api/first-post', { method: 'DELETE' }); } catch (e) { console.error(e); }
        }

        // ========================================================================
        // PROFILE
        // ========================================================================
        function openProfile(name) {
            document.getElementById('profile-q').value = name;
            showTab('profile', document.querySelectorAll('.tab')[2]);
            loadProfile();
        }

        async function loadProfile() {
            const q = document.getElementById('profile-q').value.trim().replace(/^@/, '');
            const el = document.getElementById('profile-results');
            if (!q) return;
            const seq = ++profileSeq;
            el.innerHTML = '<div class="loading">Loading profile...</div>';
            try {
                const r = await fetch(`/api/user/${encodeURIComponent(q)}`);
                const d = await r.json();
                if (seq !== profileSeq) return;
                updateStats(d._stats);
                if (d.success) {
                    el.innerHTML = renderProfile(d.account) +
                        (d.posts.length ? `<div class="grid">${d.posts.map(p => renderPost(p, false)).join('')}</div>` : '<div class="empty">No blog posts</div>');
                } else {
                    el.innerHTML = renderError(d.error || 'Profile not found', 'loadProfile()');
                }
            } catch (e) {
                if (seq !== profileSeq) return;
                el.innerHTML = renderError(e.message, 'loadProfile()');
            }
        }

        // ========================================================================
        // POST MODAL
        // ========================================================================
        async function openPost(author, permlink) {
            const seq = ++postSeq;
            document.getElementById('modal').style.display = 'flex';
            document.getElementById('modal-body').innerHTML = '<div class="loading">Loading post...</div>';

            try {
                const r = await fetch(`/api/post/${encodeURIComponent(author)}/${encodeURIComponent(permlink)}`);
                const d = await r.json();
                if (seq !== postSeq) return;
                updateStats(d._stats);

                if (d.success && d.post) {
                    const p = d.post;
                    const comments = d.comments || [];
                    document.getElementById('modal-body').innerHTML = `
                        <div class="modal-title">${esc(p.title) || 'Post'}</div>
                        <div class="modal-meta">
                            <img class="avatar" src="${esc(p.author_avatar_url)}" alt="" onerror="this.style.visibility='hidden'">
                            <span class="author" onclick='closeModal(); openProfile(${JSON.stringify(p.author)})'>${esc(p.author_display_name)}</span>
                            <span>📅 ${esc(fmtDate(p.created))}</span>
                            <span>💬 ${p.replies || 0}</span>
                            <span>👍 ${p.vote_count || 0} (${(p.vote_weight || 0).toFixed(0)}%)</span>
                            <span>💰 ${esc(p.pending_payout_value)}</span>
                            <a href="${esc(p.url)}" target="_blank" style="color:var(--cyan);">↗ View on hive.blog</a>
                        </div>
                        <div class="markdown">${renderMarkdown(p.body)}</div>
                        <div class="comments-section">
                            <h4>💬 Comments (${comments.length})</h4>
                            ${comments.length ? comments.map(renderComment).join('') : '<p style="color:var(--muted); font-size:0.82em;">No comments</p>'}
                        </div>
                    `;
                    document.querySelectorAll('#modal-body .markdown a').forEach(a => { a.target = '_blank'; a.rel = 'noopener noreferrer'; });
                } else {
                    document.getElementById('modal-body').innerHTML = renderError(d.error || 'Failed to load', null);
                }
            } catch (e) {
                if (seq !== postSeq) return;
                document.getElementById('modal-body').innerHTML = renderError(e.message, null);
            }
        }

        function closeModal() { ++postSeq; document.getElementById('modal').style.display = 'none'; }

        // ========================================================================
        // LOGS
        // ========================================================================
        async function refreshLog() {
            const el = document.getElementById('log-content');
            try {
                const r = await fetch('/api/log');
                const d = await r.json();
                updateStats(d._stats);
                if (d.entries?.length) {
                    el.innerHTML = d.entries.slice().reverse().slice(0, 80).map(e => `
                        <div class="log-entry ${e.level}">
                            <span style="color:var(--muted);">${esc(e.timestamp)}</span>
                            <span style="color:${e.level === 'ERROR' || e.level === 'TIMEOUT' ? 'var(--red)' : e.level === 'SUCCESS' ? 'var(--green)' : 'var(--blue)'};">[${esc(e.level)}]</span>
                            ${esc(e.message)}
                        </div>
                    `).join('');
                } else {
                    el.innerHTML = '<p style="color:var(--muted);">No logs</p>';
                }
            } catch (e) { el.innerHTML = `<p style="color:var(--red);">${esc(e.message)}</p>`; }
        }

        // ========================================================================
        // INIT
        // ========================================================================
        document.getElementById('feed-tag').addEventListener('keydown', e => { if (e.key === 'Enter') loadFeed(); });
        document.getElementById('first-q').addEventListener('keydown', e => { if (e.key === 'Enter') findFirstPost(); });
        document.getElementById('profile-q').addEventListener('keydown', e => { if (e.key === 'Enter') loadProfile(); });
        loadFeed();
    </script>
</body>
</html>
'''


# ============================================================================
# FLASK ROUTES
# ============================================================================
@app.route("/")
def index():
    return render_template_string(HTML_TEMPLATE)


@app.route("/api/log")
def api_log():
    return jsonify({"entries": list(debug_log), "_stats": request_stats})


# ============================================================================
# FEED
# ============================================================================
@app.route("/api/feed")
def api_feed():
    try:
        sort_mode, tag, limit, days = parse_feed_args()
    except ValueError as e:
        return bad_request(str(e))

    state = visitor_state()
    token = state.begin_feed(sort_mode, tag, limit)
    log(f"FEED: sort={sort_mode.value} tag={tag or '*'} limit={limit} days={days}", "INFO")

    try:
        page = fetch_page(sort_mode, tag, limit)
    except HiveApiError as e:
        if not state.fail(token, str(e)):
            log(f"FEED: dropped failure of superseded request: {e}", "WARNING")
            return stale_response()
        return upstream_error(e, "POSTS")

    if not state.apply_page(token, page, append=False):
        return stale_response()
    return feed_response(state, page, days)


@app.route("/api/feed/more")
def api_feed_more():
    try:
        days = days_arg()
    except ValueError as e:
        return bad_request(str(e))

    state = visitor_state()

    try:
        token, sort_mode, tag, limit, cursor = state.begin_more()
    except NoMorePages as e:
        return jsonify({"success": False, "error": str(e), "has_more": False, "_stats": request_stats}), 409

    log(f"FEED MORE: sort={sort_mode.value} tag={tag or '*'} after @{cursor.author}/{cursor.permlink}", "INFO")

    try:
        page = fetch_page(sort_mode, tag, limit, cursor)
    except HiveApiError as e:
        if not state.fail(token, str(e)):
            log(f"FEED: dropped failure of superseded request: {e}", "WARNING")
            return stale_response()
        return upstream_error(e, "POSTS")

    if not state.apply_page(token, page):
        return stale_response()
    return feed_response(state, page, days)


@app.route("/api/page")
def api_page():
    """Stateless page fetch: the caller owns the cursor."""
    try:
        sort_mode, tag, limit, _ = parse_feed_args()
    except ValueError as e:
        return bad_request(str(e))

    start_author = request.args.get("start_author", "")
    start_permlink = request.args.get("start_permlink", "")
    if bool(start_author) != bool(start_permlink):
        return bad_request("start_author and start_permlink go together")
    cursor = PageCursor(start_author, start_permlink) if start_author else None

    try:
        page = fetch_page(sort_mode, tag, limit, cursor)
    except HiveApiError as e:
        return upstream_error(e, "POSTS")

    next_cursor = page.next_cursor
    return jsonify({
        "success": True,
        "posts": [post_card(p) for p in page.items],
        "has_more": page.has_more,
        "next_cursor": {"author": next_cursor.author, "permlink": next_cursor.permlink} if next_cursor else None,
        "_stats": request_stats
    })


# ============================================================================
# FIRST POST
# ============================================================================
@app.route("/api/first-post/<username>")
def api_first_post(username):
    username = username.strip().lstrip("@").lower()
    state = visitor_state()
    token = state.begin_search(username)
    log(f"FIRST POST: @{username}", "INFO")

    try:
        result = find_first_post(username)
    except HiveApiError as e:
        if not state.fail_search(token, str(e)):
            log(f"FIRST POST: dropped failure of superseded search: {e}", "WARNING")
            return stale_response()
        return upstream_error(e, "FIRST POST")

    if not state.apply_first_post(token, result):
        return stale_response()

    if not result.found:
        return jsonify({
            "success": False,
            "not_found": True,
            "error": f"No posts found for @{username}",
            "scanned": result.scanned,
            "_stats": request_stats
        })

    log(f"FIRST POST: @{username} -> {result.post.permlink} (searched {result.scanned} posts)", "SUCCESS")
    return jsonify({
        "success": True,
        "post": post_card(result.post),
        "scanned": result.scanned,
        "rounds": result.rounds,
        "truncated": result.truncated,
        "_stats": request_stats
    })


@app.route("/api/first-post", methods=["DELETE"])
def api_clear_first_post():
    visitor_state().clear_search()
    return jsonify({"success": True, "_stats": request_stats})


# ============================================================================
# PROFILE
# ============================================================================
@app.route("/api/user/<username>")
def api_user(username):
    username = username.strip().lstrip("@").lower()
    log(f"USER: @{username}", "INFO")

    try:
        account = get_account(username)
        if account is None:
            return jsonify({"success": False, "error": f"Account @{username} not found", "_stats": request_stats}), 404
        posts = fetch_blog(username)
    except HiveApiError as e:
        return upstream_error(e, "PROFILE")

    return jsonify({
        "success": True,
        "account": account.to_dict(),
        "posts": [post_card(p, PROFILE_EXCERPT) for p in posts],
        "_stats": request_stats
    })


# ============================================================================
# SINGLE POST
# ============================================================================
@app.route("/api/post/<author>/<permlink>")
def api_single_post(author, permlink):
    author = author.strip().lstrip("@")
    log(f"POST: @{author}/{permlink}", "INFO")

    try:
        detail = fetch_post_detail(author, permlink)
    except HiveApiError as e:
        return upstream_error(e, "POST")

    if detail is None:
        return jsonify({"success": False, "error": "Post not found", "_stats": request_stats}), 404

    return jsonify({
        "success": True,
        "post": detail.post.to_dict(),
        "account": detail.account.to_dict() if detail.account else None,
        "comments": [c.to_dict() for c in detail.comments],
        "_stats": request_stats
    })


# ============================================================================
# MAIN
# ============================================================================
if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("🐝 HIVE INTRO EXPLORER v1.0")
    print("=" * 60)
    print(f"\n📡 Node: {HIVE_API_NODE}")
    print(f"🏷  Default tag: #{DEFAULT_TAG}")
    print(f"🌐 Open: http://{HOST}:{PORT}")
    print("\nPress Ctrl+C to stop\n")
    print("=" * 60 + "\n")

    app.run(host=HOST, port=PORT, debug=False, threaded=True, use_reloader=False)
