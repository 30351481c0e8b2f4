"""JS snippets used by the CDP page driver.

Element scripts resolve `el` from a selector first and report
`{ok: false, reason: 'not_found' | 'invalid_selector'}` instead of throwing, so the
driver can map them onto ElementNotFoundError / SelectorError.
"""

from __future__ import annotations

import json
from typing import Any

HIGHLIGHT_CLASS = "lens-highlight"

_RESOLVE_JS = r"""
  let el = null;
  try {
    el = document.querySelector(selector);
  } catch (e) {
    return { ok: false, reason: 'invalid_selector', message: String((e && e.message) || e) };
  }
  if (!el) return { ok: false, reason: 'not_found' };
  const isVisible = (node) => {
    const cs = getComputedStyle(node);
    if (cs.display === 'none' || cs.visibility === 'hidden' || cs.visibility === 'collapse') return false;
    if (parseFloat(cs.opacity) === 0) return false;
    const r = node.getBoundingClientRect();
    return r.width > 0 && r.height > 0;
  };
"""


def element_script(selector: str, body: str, args: Any = None) -> str:
    """Wrap `body` (which sees `el`, `args`, `isVisible`) in a selector-resolving IIFE."""
    return (
        "(() => {\n"
        f"  const selector = {json.dumps(selector)};\n"
        f"  const args = {json.dumps(args)};\n"
        + _RESOLVE_JS
        + body
        + "\n})()"
    )


CENTER_BODY = r"""
  el.scrollIntoView({ block: 'center', inline: 'center', behavior: 'instant' });
  const r = el.getBoundingClientRect();
  return { ok: true, value: { x: r.x + r.width / 2, y: r.y + r.height / 2, width: r.width, height: r.height, visible: isVisible(el) } };
"""

RECT_BODY = r"""
  const r = el.getBoundingClientRect();
  return { ok: true, value: { x: r.x + window.scrollX, y: r.y + window.scrollY, width: r.width, height: r.height } };
"""

FOCUS_BODY = r"""
  el.focus();
  if (args && args.clear) {
    if ('value' in el) {
      const proto = el instanceof HTMLTextAreaElement ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
      const setter = Object.getOwnPropertyDescriptor(proto, 'value');
      if (setter && setter.set) setter.set.call(el, ''); else el.value = '';
      el.dispatchEvent(new Event('input', { bubbles: true }));
    } else if (el.isContentEditable) {
      el.textContent = '';
    }
  }
  return { ok: true, value: document.activeElement === el || el.contains(document.activeElement) };
"""

FILL_BODY = r"""
  if (!('value' in el) && !el.isContentEditable) {
    return { ok: false, reason: 'not_fillable', message: 'Element is not an input, textarea or contenteditable' };
  }
  el.focus();
  if (el.isContentEditable && !('value' in el)) {
    el.textContent = args.value;
  } else {
    const proto = el instanceof HTMLTextAreaElement ? HTMLTextAreaElement.prototype
      : el instanceof HTMLSelectElement ? HTMLSelectElement.prototype : HTMLInputElement.prototype;
    const desc = Object.getOwnPropertyDescriptor(proto, 'value');
    if (desc && desc.set) desc.set.call(el, args.value); else el.value = args.value;
  }
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return { ok: true, value: null };
"""

SELECT_BODY = r"""
  if (!(el instanceof HTMLSelectElement)) {
    return { ok: false, reason: 'not_fillable', message: 'Element is not a <select>' };
  }
  const wanted = new Set(args.values);
  const picked = [];
  for (const opt of Array.from(el.options)) {
    const hit = wanted.has(opt.value) || wanted.has(opt.label) || wanted.has(opt.text.trim());
    if (hit && (el.multiple || picked.length === 0)) {
      opt.selected = true;
      picked.push(opt.value);
    } else if (el.multiple) {
      opt.selected = false;
    }
  }
  if (!picked.length) return { ok: false, reason: 'no_option', message: 'No option matches ' + JSON.stringify(args.values) };
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return { ok: true, value: picked };
"""

TEXT_BODY = r"""
  return { ok: true, value: String(el.innerText !== undefined ? el.innerText : (el.textContent || '')) };
"""

ATTRIBUTE_BODY = r"""
  return { ok: true, value: el.getAttribute(args.name) };
"""

VISIBLE_BODY = r"""
  return { ok: true, value: isVisible(el) };
"""

ENABLED_BODY = r"""
  return { ok: true, value: !el.matches(':disabled') && el.getAttribute('aria-disabled') !== 'true' };
"""

CHECKED_BODY = r"""
  const aria = el.getAttribute('aria-checked');
  return { ok: true, value: !!el.checked || aria === 'true' };
"""

WAIT_BODY = r"""
  if (args && args.visible && !isVisible(el)) return { ok: false, reason: 'not_found' };
  return { ok: true, value: null };
"""

SCROLL_BODY = r"""
  if (!args.direction) {
    el.scrollIntoView({ block: 'center', behavior: 'instant' });
    return { ok: true, value: null };
  }
  const d = args.distance;
  el.scrollBy({ left: args.direction === 'left' ? -d : args.direction === 'right' ? d : 0,
                top: args.direction === 'up' ? -d : args.direction === 'down' ? d : 0, behavior: 'instant' });
  return { ok: true, value: null };
"""

HIGHLIGHT_BODY = r"""
  const nodes = Array.from(document.querySelectorAll(selector)).slice(0, 50);
  for (const node of nodes) {
    const r = node.getBoundingClientRect();
    const box = document.createElement('div');
    box.className = args.cls;
    Object.assign(box.style, {
      position: 'fixed', left: r.left + 'px', top: r.top + 'px', width: r.width + 'px', height: r.height + 'px',
      border: '2px solid ' + args.color, background: args.color + '22', borderRadius: '2px',
      pointerEvents: 'none', zIndex: '2147483647', boxSizing: 'border-box'
    });
    document.documentElement.appendChild(box);
    if (args.duration > 0) setTimeout(() => box.remove(), args.duration);
  }
  return { ok: true, value: nodes.length };
"""


def clear_highlights_script() -> str:
    return f"document.querySelectorAll({json.dumps('.' + HIGHLIGHT_CLASS)}).forEach((n) => n.remove())"


def scroll_window_script(direction: str, distance: int) -> str:
    dx = -distance if direction == "left" else distance if direction == "right" else 0
    dy = -distance if direction == "up" else distance if direction == "down" else 0
    return f"window.scrollBy({{ left: {dx}, top: {dy}, behavior: 'instant' }})"


ACCESSIBILITY_SNAPSHOT_JS = r"""
(() => {
  const MAX_DEPTH = 10;
  const MAX_NAME = 50;
  const IMPLICIT = {
    a: 'link', button: 'button', select: 'combobox', textarea: 'textbox', img: 'img',
    nav: 'navigation', main: 'main', header: 'banner', footer: 'contentinfo', aside: 'complementary',
    form: 'form', table: 'table', ul: 'list', ol: 'list', li: 'listitem', dialog: 'dialog',
    h1: 'heading', h2: 'heading', h3: 'heading', h4: 'heading', h5: 'heading', h6: 'heading',
    option: 'option', label: 'label', summary: 'button'
  };
  const INPUT_ROLES = { checkbox: 'checkbox', radio: 'radio', button: 'button', submit: 'button',
    reset: 'button', range: 'slider', search: 'searchbox' };
  function roleOf(el) {
    const explicit = el.getAttribute('role');
    if (explicit) return explicit.split(' ')[0];
    const tag = el.tagName.toLowerCase();
    if (tag === 'input') return INPUT_ROLES[String(el.type || 'text')] || 'textbox';
    if (tag === 'a' && !el.hasAttribute('href')) return null;
    return IMPLICIT[tag] || null;
  }
  function nameOf(el, role) {
    let name = el.getAttribute('aria-label') || '';
    if (!name && el.getAttribute('aria-labelledby')) {
      name = el.getAttribute('aria-labelledby').split(' ')
        .map((id) => { const n = document.getElementById(id); return n ? n.textContent : ''; }).join(' ');
    }
    if (!name && el.labels && el.labels.length) name = el.labels[0].textContent || '';
    if (!name) name = el.getAttribute('alt') || el.getAttribute('title') || el.getAttribute('placeholder') || '';
    if (!name && ['link', 'button', 'heading', 'option', 'listitem', 'label', 'tab', 'menuitem'].includes(role)) {
      name = el.textContent || '';
    }
    return name.replace(/\s+/g, ' ').trim().slice(0, MAX_NAME);
  }
  function hidden(el) {
    if (el.getAttribute('aria-hidden') === 'true' || el.hidden) return true;
    const cs = getComputedStyle(el);
    return cs.display === 'none' || cs.visibility === 'hidden';
  }
  function walk(el, depth) {
    if (!el || el.nodeType !== 1 || hidden(el)) return [];
    const tag = el.tagName.toLowerCase();
    if (tag === 'script' || tag === 'style' || tag === 'noscript' || el.classList.contains('lens-highlight')) return [];
    const kids = depth < MAX_DEPTH ? Array.from(el.children).flatMap((c) => walk(c, depth + 1)) : [];
    const role = roleOf(el);
    if (!role) return kids;
    const node = { role: role };
    const name = nameOf(el, role);
    if (name) node.name = name;
    if (role === 'heading') node.level = Number(tag.slice(1)) || undefined;
    if ('value' in el && (role === 'textbox' || role === 'combobox' || role === 'searchbox' || role === 'slider')) {
      node.value = String(el.value).slice(0, MAX_NAME);
    }
    if (role === 'checkbox' || role === 'radio') node.checked = !!el.checked;
    if (el.matches(':disabled')) node.disabled = true;
    if (kids.length) node.children = kids;
    return [node];
  }
  return { role: 'document', name: String(document.title || '').slice(0, MAX_NAME), children: walk(document.body, 0) };
})()
"""
