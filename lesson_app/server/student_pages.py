"""HTML pages served to students' browsers."""

from __future__ import annotations

from html import escape

from lesson_app.constants.about import APP_NAME
from lesson_app.core.markdown_math_renderer import MATHJAX_SCRIPT_URL
from lesson_app.styling.styles import Styles


def render_page(template: str, **values: object) -> str:
    """Fill ``{{name}}`` placeholders with HTML-escaped values."""

    page = template.replace("{{app_name}}", escape(APP_NAME))
    page = page.replace("{{page_css}}", _PAGE_CSS)
    page = page.replace("{{mathjax_url}}", MATHJAX_SCRIPT_URL)
    for name, value in values.items():
        page = page.replace("{{" + name + "}}", escape(str(value)))
    return page


_PAGE_CSS = (
    Styles.get_slide_page_css()
    + """
      .card { max-width: 32rem; margin: 2rem auto; padding: 1.5rem; border-radius: 0.75rem;
              box-shadow: 0 0.5rem 1.5rem rgba(0, 0, 0, 0.12); }
      .card input { width: 100%; box-sizing: border-box; padding: 0.6rem; margin: 0.35rem 0 0.75rem 0; }
      .primary-button { border: none; border-radius: 0.5rem; padding: 0.7rem 1.3rem; background: #2563eb; color: #fff; cursor: pointer; }
      .primary-button:disabled { opacity: 0.6; cursor: not-allowed; }
      .error { color: #dc2626; }
      .hidden { display: none; }
      .toolbar { display: flex; gap: 0.75rem; align-items: center; margin-bottom: 1rem; }
      .celebration { position: fixed; inset: 0; display: flex; align-items: center; justify-content: center;
                     pointer-events: none; overflow: hidden; z-index: 10; }
      .celebration-phrase { font-size: 2.5rem; font-weight: 700; padding: 1rem 2rem; border-radius: 1rem;
                            background: rgba(255, 255, 255, 0.92); box-shadow: 0 0.5rem 2rem rgba(0, 0, 0, 0.2); }
      .celebration.effect-gold { background: radial-gradient(circle, rgba(255, 215, 0, 0.35), transparent 70%); }
      .celebration.effect-stars { background: radial-gradient(circle, rgba(255, 248, 220, 0.5), transparent 70%); }
      .celebration.effect-rainbow { background: linear-gradient(135deg, rgba(255, 0, 0, 0.15), rgba(255, 255, 0, 0.15),
                                    rgba(0, 255, 0, 0.15), rgba(0, 0, 255, 0.15), rgba(139, 0, 255, 0.15)); }
      .confetti-piece { position: absolute; top: -1rem; width: 0.6rem; height: 1rem; border-radius: 0.1rem;
                        animation: confetti-fall linear forwards; }
      .celebration.hidden { display: none; }
      @keyframes confetti-fall { to { transform: translateY(110vh) rotate(720deg); opacity: 0.6; } }
      .assistant { margin-top: 1.5rem; padding: 1rem; border-radius: 0.75rem; border: 1px solid #d1d5db; }
      .assistant-log { max-height: 16rem; overflow-y: auto; margin-bottom: 0.75rem; }
      .assistant-log p { margin: 0.35rem 0; white-space: pre-wrap; }
      .assistant-log .from-user { text-align: right; color: #1e3a8a; }
      .assistant form { display: flex; gap: 0.5rem; }
      .assistant input { flex: 1; padding: 0.6rem; }
    """
)

LANDING_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{{app_name}}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>{{page_css}}</style>
  </head>
  <body>
    <section class="card">
      <h1>Join Lesson Session</h1>
      <p class="notice">{{greeting}}</p>
      <form method="get" action="/join">
        <label for="code">Enter the session code provided by your teacher</label>
        <input id="code" name="code" autocomplete="off" maxlength="12" placeholder="ABC123" required />
        <button class="primary-button" type="submit">Join</button>
      </form>
      <p class="error">{{error}}</p>
      <p><a href="/login">Sign in or create an account</a></p>
    </section>
  </body>
</html>
"""

SIGN_IN_REDIRECT_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{{app_name}}</title>
    <meta http-equiv="refresh" content="{{delay}};url=/login" />
    <style>{{page_css}}</style>
  </head>
  <body>
    <section class="card">
      <h1>Join Lesson Session</h1>
      <p>{{message}}</p>
      <p class="notice">Taking you to the sign-in page&hellip;</p>
    </section>
  </body>
</html>
"""

LOGIN_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{{app_name}} sign in</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>{{page_css}}</style>
  </head>
  <body>
    <section class="card">
      <h1 id="form-title">Sign in</h1>
      <form id="auth-form">
        <div id="name-row" class="hidden">
          <label for="name">Full name</label>
          <input id="name" autocomplete="name" />
        </div>
        <label for="email">Email</label>
        <input id="email" type="email" autocomplete="email" required />
        <label for="password">Password</label>
        <input id="password" type="password" autocomplete="current-password" required />
        <button id="submit-button" class="primary-button" type="submit">Sign in</button>
      </form>
      <p id="auth-status" class="error"></p>
      <p><a href="#" id="mode-toggle">No account yet? Create one</a></p>
    </section>
    <script>
      let registering = false;
      const form = document.getElementById('auth-form');
      const statusEl = document.getElementById('auth-status');
      const toggle = document.getElementById('mode-toggle');

      toggle.addEventListener('click', (event) => {
        event.preventDefault();
        registering = !registering;
        document.getElementById('name-row').classList.toggle('hidden', !registering);
        document.getElementById('form-title').textContent = registering ? 'Create account' : 'Sign in';
        document.getElementById('submit-button').textContent = registering ? 'Create account' : 'Sign in';
        toggle.textContent = registering ? 'Already registered? Sign in' : 'No account yet? Create one';
      });

      form.addEventListener('submit', async (event) => {
        event.preventDefault();
        statusEl.textContent = '';
        const body = {
          email: document.getElementById('email').value,
          password: document.getElementById('password').value,
        };
        if (registering) {
          body.name = document.getElementById('name').value;
        }
        try {
          const response = await fetch(registering ? '/auth/register' : '/auth/login', {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify(body),
          });
          if (response.ok) {
            window.location.href = '/auth/continue';
            return;
          }
          const payload = await response.json();
          statusEl.textContent = typeof payload.detail === 'string' ? payload.detail : 'Sign in failed.';
        } catch (error) {
          statusEl.textContent = 'Unable to reach the server.';
        }
      });
    </script>
  </body>
</html>
"""

SESSION_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{{app_name}} lesson</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>{{page_css}}</style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$'], ['\\\\(','\\\\)']], displayMath: [['$$','$$'], ['\\\\[','\\\\]']] } };
    </script>
    <script defer src="{{mathjax_url}}"></script>
  </head>
  <body>
    <div class="toolbar">
      <button id="prev-button" class="primary-button">Previous</button>
      <span id="position"></span>
      <button id="next-button" class="primary-button">Next</button>
      <span id="mode" class="notice"></span>
    </div>
    <div id="banner" class="banner hidden"></div>
    <div id="slide-container"><p class="notice">Loading lesson&hellip;</p></div>
    <p id="status"></p>
    <section id="assistant" class="assistant hidden">
      <h3>Ask the assistant</h3>
      <div id="assistant-log" class="assistant-log"></div>
      <form id="assistant-form">
        <input id="assistant-input" autocomplete="off" placeholder="Ask about this slide" />
        <button id="assistant-button" class="primary-button" type="submit">Ask</button>
      </form>
    </section>
    <div id="celebration" class="celebration hidden"><div id="celebration-phrase" class="celebration-phrase"></div></div>
    <script>
      const sessionId = '{{session_id}}';
      const celebrationMs = {{celebration_ms}};
      const celebrationEl = document.getElementById('celebration');
      const celebrationPhrase = document.getElementById('celebration-phrase');
      const confettiColors = {
        gold: ['#FFD700', '#FFA500', '#FF8C00', '#FFDF00', '#F0E68C'],
        rainbow: ['#FF0000', '#FF7F00', '#FFFF00', '#00FF00', '#0000FF', '#4B0082', '#8B00FF'],
        stars: ['#FFD700', '#FFF8DC', '#FFFACD', '#FAFAD2', '#FFFFE0'],
        none: ['#FF0000', '#00FF00', '#0000FF', '#FFD700', '#FF69B4'],
      };
      let celebrationTimer = null;
      const slideContainer = document.getElementById('slide-container');
      const banner = document.getElementById('banner');
      const statusEl = document.getElementById('status');
      const positionEl = document.getElementById('position');
      const modeEl = document.getElementById('mode');
      const prevButton = document.getElementById('prev-button');
      const nextButton = document.getElementById('next-button');
      let state = null;
      let renderedKey = null;
      let pollHandle = null;
      const assistantEl = document.getElementById('assistant');
      const assistantLog = document.getElementById('assistant-log');
      const assistantForm = document.getElementById('assistant-form');
      const assistantInput = document.getElementById('assistant-input');
      const assistantButton = document.getElementById('assistant-button');
      let chatSlideId = null;

      function showBanner(text) {
        banner.textContent = text || '';
        banner.classList.toggle('hidden', !text);
      }

      function typeset() {
        if (window.MathJax && window.MathJax.typesetPromise) {
          window.MathJax.typesetPromise([slideContainer]).catch(() => {});
        }
      }

      function playChime() {
        const AudioContextClass = window.AudioContext || window.webkitAudioContext;
        if (!AudioContextClass) return;
        const context = new AudioContextClass();
        const oscillator = context.createOscillator();
        const gain = context.createGain();
        oscillator.connect(gain);
        gain.connect(context.destination);
        oscillator.type = 'sine';
        oscillator.frequency.setValueAtTime(1318.51, context.currentTime);
        oscillator.frequency.setValueAtTime(1567.98, context.currentTime + 0.1);
        oscillator.frequency.setValueAtTime(2093.0, context.currentTime + 0.2);
        gain.gain.setValueAtTime(0, context.currentTime);
        gain.gain.linearRampToValueAtTime(0.2, context.currentTime + 0.05);
        gain.gain.linearRampToValueAtTime(0, context.currentTime + 0.4);
        oscillator.start();
        oscillator.stop(context.currentTime + 0.4);
      }

      function celebrate(celebration) {
        celebrationEl.querySelectorAll('.confetti-piece').forEach((piece) => piece.remove());
        celebrationEl.className = 'celebration effect-' + celebration.screen_effect;
        celebrationPhrase.textContent = celebration.phrase;
        if (celebration.confetti) {
          const colors = confettiColors[celebration.screen_effect] || confettiColors.none;
          for (let i = 0; i < 80; i++) {
            const piece = document.createElement('span');
            piece.className = 'confetti-piece';
            piece.style.left = (Math.random() * 100) + 'vw';
            piece.style.background = colors[i % colors.length];
            piece.style.animationDuration = (1.5 + Math.random() * 1.5) + 's';
            piece.style.animationDelay = (Math.random() * 0.5) + 's';
            celebrationEl.appendChild(piece);
          }
        }
        if (celebration.sound) {
          try { playChime(); } catch (error) {}
        }
        if (celebrationTimer) clearTimeout(celebrationTimer);
        celebrationTimer = setTimeout(() => celebrationEl.classList.add('hidden'), celebrationMs);
      }

      function bindForms() {
        slideContainer.querySelectorAll('form.answer-form').forEach((form) => {
          form.addEventListener('submit', async (event) => {
            event.preventDefault();
            const data = new FormData(form);
            const values = Array.from(data.values());
            if (!values.length || !String(values[0]).trim()) {
              statusEl.textContent = 'Please choose or type an answer first.';
              return;
            }
            const response = await fetch('/api/sessions/' + sessionId + '/answers', {
              method: 'POST',
              headers: { 'Content-Type': 'application/json' },
              body: JSON.stringify({
                slide_id: form.dataset.slideId,
                block_id: form.dataset.blockId,
                answer: String(values[0]),
              }),
            });
            const payload = await response.json();
            if (!response.ok) {
              statusEl.textContent = payload.detail || 'Unable to send answer.';
              return;
            }
            if (payload.is_correct === true) {
              statusEl.textContent = 'Correct!';
              if (payload.celebration) celebrate(payload.celebration);
            } else if (payload.is_correct === false) {
              statusEl.textContent = 'Not quite. Try again!';
            } else {
              statusEl.textContent = 'Answer sent. Your teacher will review it.';
            }
          });
        });
      }

      function appendChat(role, content) {
        const line = document.createElement('p');
        line.className = role === 'user' ? 'from-user' : 'from-assistant';
        line.textContent = content;
        assistantLog.appendChild(line);
        assistantLog.scrollTop = assistantLog.scrollHeight;
      }

      async function loadChat(slideId) {
        chatSlideId = slideId;
        assistantLog.innerHTML = '';
        const response = await fetch('/api/sessions/' + sessionId + '/chat?slide_id=' + encodeURIComponent(slideId));
        if (!response.ok || chatSlideId !== slideId) return;
        const payload = await response.json();
        payload.messages.forEach((message) => appendChat(message.role, message.content));
      }

      assistantForm.addEventListener('submit', async (event) => {
        event.preventDefault();
        const message = assistantInput.value.trim();
        if (!message || !state) return;
        const slideId = state.slide_id;
        appendChat('user', message);
        assistantInput.value = '';
        assistantButton.disabled = true;
        try {
          const response = await fetch('/api/sessions/' + sessionId + '/chat', {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify({ slide_id: slideId, message: message }),
          });
          const payload = await response.json();
          if (chatSlideId !== slideId) return;
          appendChat('assistant', response.ok ? payload.content : (payload.detail || 'The assistant is unavailable.'));
        } catch (error) {
          appendChat('assistant', 'Unable to reach the assistant.');
        } finally {
          assistantButton.disabled = false;
        }
      });

      function render(next) {
        state = next;
        if (next.ended) {
          showBanner('This session has ended.');
          prevButton.disabled = true;
          nextButton.disabled = true;
          if (pollHandle) { clearInterval(pollHandle); pollHandle = null; }
          assistantEl.classList.add('hidden');
          return;
        }
        showBanner(next.is_paused ? 'The teacher paused the lesson.' : '');
        positionEl.textContent = 'Slide ' + (next.slide_index + 1) + ' of ' + next.slide_count;
        modeEl.textContent = next.is_synced ? 'Following the teacher' : 'Navigate at your own pace';
        prevButton.disabled = !next.allowed_slides.includes(next.slide_index - 1);
        nextButton.disabled = !next.allowed_slides.includes(next.slide_index + 1);
        const key = next.slide_id + ':' + next.slide_version;
        if (key !== renderedKey) {
          renderedKey = key;
          slideContainer.innerHTML = next.slide_html;
          bindForms();
          typeset();
        }
        assistantEl.classList.toggle('hidden', !next.assistant_enabled);
        if (next.assistant_enabled && next.slide_id !== chatSlideId) loadChat(next.slide_id);
      }

      async function refreshState() {
        try {
          const response = await fetch('/api/sessions/' + sessionId + '/state');
          if (response.status === 401) {
            window.location.href = '/login';
            return;
          }
          const payload = await response.json();
          if (!response.ok) {
            showBanner(payload.detail || 'Unable to load the session.');
            return;
          }
          render(payload);
        } catch (error) {
          statusEl.textContent = 'Connection lost. Retrying…';
        }
      }

      async function navigate(offset) {
        if (!state) return;
        const response = await fetch('/api/sessions/' + sessionId + '/navigate', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ slide_index: state.slide_index + offset }),
        });
        if (!response.ok) {
          const payload = await response.json();
          statusEl.textContent = payload.detail || 'You cannot move to that slide right now.';
        }
        refreshState();
      }

      prevButton.addEventListener('click', () => navigate(-1));
      nextButton.addEventListener('click', () => navigate(1));
      refreshState();
      pollHandle = setInterval(refreshState, {{poll_ms}});
    </script>
  </body>
</html>
"""
