"""Page-side inspection scripts.

Helpers are plain JS source kept as data. They are concatenated into a prelude
once at import time; each call only appends its own arguments. The scripts must
stay deterministic: no random ids, no timestamps.

Contract (returned by value):
- `null` when no element matched
- `{"__lensError": "invalid_selector", "message": str}` when querySelector threw
- otherwise an ElementInfo-shaped object (see `models.ElementInfo.from_dict`)
"""

from __future__ import annotations

BASE_HELPERS_JS = r"""
  const STYLE_KEYS = ['display', 'position', 'width', 'height', 'margin', 'padding',
    'color', 'backgroundColor', 'fontSize', 'fontFamily'];
  const SEMANTIC = {
    nav: 'Navigation', header: 'Header', footer: 'Footer', main: 'Main content', aside: 'Sidebar',
    article: 'Article', section: 'Section', form: 'Form', button: 'Button', a: 'Link',
    input: 'Input field', select: 'Dropdown', textarea: 'Text area', img: 'Image', video: 'Video',
    table: 'Table', ul: 'List', ol: 'Ordered list', li: 'List item', label: 'Label',
    h1: 'Heading 1', h2: 'Heading 2', h3: 'Heading 3', h4: 'Heading 4', h5: 'Heading 5',
    h6: 'Heading 6', p: 'Paragraph', dialog: 'Dialog', svg: 'Icon', canvas: 'Canvas'
  };
  const ROLES = {
    button: 'Button', link: 'Link', navigation: 'Navigation', dialog: 'Dialog',
    alertdialog: 'Alert dialog', menu: 'Menu', menuitem: 'Menu item', tab: 'Tab',
    tablist: 'Tab list', tabpanel: 'Tab panel', checkbox: 'Checkbox', radio: 'Radio button',
    textbox: 'Text box', combobox: 'Combo box', listbox: 'List box', option: 'Option',
    banner: 'Banner', contentinfo: 'Footer', main: 'Main content', complementary: 'Sidebar',
    search: 'Search', form: 'Form', img: 'Image', tooltip: 'Tooltip',
    progressbar: 'Progress bar', alert: 'Alert', status: 'Status'
  };
  const CLASS_HINTS = [
    [/nav|menu/, 'Navigation'], [/header|topbar/, 'Header'], [/footer/, 'Footer'],
    [/sidebar|drawer/, 'Sidebar'], [/modal|dialog/, 'Dialog'], [/card/, 'Card'],
    [/btn|button/, 'Button'], [/hero|banner/, 'Banner'], [/list/, 'List'],
    [/form/, 'Form'], [/icon/, 'Icon'], [/container|wrapper/, 'Container']
  ];
  const LOADING_RE = /loading|spinner|skeleton|shimmer|pulse|loader/;
  const TEXT_TAGS = ['button', 'a', 'label', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'option'];

  const esc = (v) => (window.CSS && CSS.escape) ? CSS.escape(String(v)) : String(v).replace(/([^\w-])/g, '\\$1');
  const classString = (el) => {
    const raw = typeof el.className === 'string' ? el.className : (el.getAttribute && el.getAttribute('class'));
    return String(raw || '').toLowerCase();
  };

  function isLoading(el) {
    if (LOADING_RE.test(classString(el))) return true;
    if (el.getAttribute('aria-busy') === 'true') return true;
    try {
      return !!el.querySelector('[class*="spinner"], [class*="loader"], [role="progressbar"]');
    } catch (e) {
      return false;
    }
  }

  function describe(el) {
    const tag = el.tagName.toLowerCase();
    const role = el.getAttribute('role');
    let base = null;
    if (role && ROLES[role]) base = ROLES[role];
    else if (SEMANTIC[tag]) base = SEMANTIC[tag];
    else {
      const cls = classString(el);
      for (const [re, label] of CLASS_HINTS) {
        if (re.test(cls)) { base = label; break; }
      }
    }
    if (!base) base = (tag === 'div' || tag === 'span') ? 'Container' : tag;
    let label = el.getAttribute('aria-label') || el.getAttribute('title') ||
      el.getAttribute('placeholder') || el.getAttribute('alt') || '';
    if (!label && TEXT_TAGS.includes(tag)) label = (el.textContent || '').trim();
    label = label.replace(/\s+/g, ' ').slice(0, 40);
    let out = label ? base + ': "' + label + '"' : base;
    if (el.id) out += ' (#' + el.id + ')';
    else if (el.getAttribute('data-testid')) out += ' [' + el.getAttribute('data-testid') + ']';
    return isLoading(el) ? 'Loading: ' + out : out;
  }

  function buildSelector(el) {
    if (el.id) return '#' + esc(el.id);
    const tag = el.tagName.toLowerCase();
    let sel = tag;
    const classes = Array.from(el.classList || []).filter(Boolean).slice(0, 2);
    if (classes.length) sel += '.' + classes.map(esc).join('.');
    const parent = el.parentElement;
    if (parent) {
      const same = Array.from(parent.children).filter((c) => c.tagName === el.tagName);
      if (same.length > 1) sel += ':nth-of-type(' + (same.indexOf(el) + 1) + ')';
    }
    return sel;
  }

  function parentChain(el) {
    const chain = [];
    let node = el.parentElement;
    while (node && node !== document.body && node !== document.documentElement && chain.length < 6) {
      chain.push({ tagName: node.tagName.toLowerCase(), selector: buildSelector(node), description: describe(node) });
      node = node.parentElement;
    }
    return chain;
  }

  function formState(el) {
    const tag = el.tagName.toLowerCase();
    if (tag !== 'input' && tag !== 'select' && tag !== 'textarea') return null;
    const type = tag === 'input' ? String(el.type || 'text') : tag;
    const valid = !el.validity || el.validity.valid;
    const state = {
      type: type,
      value: String(el.value == null ? '' : el.value),
      required: !!el.required,
      disabled: !!el.disabled,
      readOnly: !!el.readOnly,
      validationState: valid ? 'valid' : 'invalid'
    };
    if (el.placeholder) state.placeholder = String(el.placeholder);
    if (!valid && el.validationMessage) state.validationMessage = String(el.validationMessage);
    if (type === 'checkbox' || type === 'radio') state.checked = !!el.checked;
    if (tag === 'select') {
      state.selectedIndex = el.selectedIndex;
      state.options = Array.from(el.options).slice(0, 10).map((o) => String(o.label || o.text || '').trim());
    }
    return state;
  }

  function baseInfo(el) {
    const rect = el.getBoundingClientRect();
    const cs = getComputedStyle(el);
    const attributes = {};
    for (const a of Array.from(el.attributes || [])) attributes[a.name] = a.value;
    const computedStyles = {};
    for (const k of STYLE_KEYS) computedStyles[k] = String(cs[k] || '');
    const info = {
      selector: buildSelector(el),
      tagName: el.tagName.toLowerCase(),
      classes: Array.from(el.classList || []),
      attributes: attributes,
      computedStyles: computedStyles,
      boundingBox: {
        x: Math.round(rect.x), y: Math.round(rect.y),
        width: Math.round(rect.width), height: Math.round(rect.height)
      },
      parentChain: parentChain(el),
      siblingCount: el.parentElement ? el.parentElement.children.length - 1 : 0,
      childCount: el.children.length,
      description: describe(el)
    };
    if (el.id) info.id = el.id;
    const fs = formState(el);
    if (fs) info.formState = fs;
    if (isLoading(el)) info.isLoading = true;
    return info;
  }
"""

EDGE_CASE_HELPERS_JS = r"""
  const OVERLAY_CLASSES = [
    [/modal/, 'modal'], [/drawer|offcanvas|sheet/, 'drawer'], [/popover|popper/, 'popover'],
    [/tooltip/, 'tooltip'], [/dropdown|menu-list/, 'dropdown'], [/dialog/, 'dialog']
  ];
  const DISMISSIBLE = ['popover', 'tooltip', 'dropdown', 'drawer'];
  const CLOSE_CONTROL = '[aria-label*="close" i], [aria-label*="dismiss" i], [data-dismiss], ' +
    '[data-bs-dismiss], .close, .btn-close, button[class*="close"]';

  const parentOf = (node) => node.parentElement || (node.getRootNode && node.getRootNode().host) || null;

  function isFullViewportFixed(node) {
    const cs = getComputedStyle(node);
    if (cs.position !== 'fixed') return false;
    const r = node.getBoundingClientRect();
    return r.left <= 0 && r.top <= 0 && r.right >= window.innerWidth && r.bottom >= window.innerHeight;
  }

  function overlayType(node) {
    const role = node.getAttribute('role');
    if (role === 'dialog' || role === 'alertdialog') return 'dialog';
    if (node.tagName === 'DIALOG' && node.open) return 'dialog';
    if (role === 'tooltip') return 'tooltip';
    if (role === 'menu' || role === 'listbox') return 'dropdown';
    if (node.getAttribute('aria-modal') === 'true') return 'modal';
    const cls = classString(node);
    for (const [re, type] of OVERLAY_CLASSES) {
      if (re.test(cls)) return type;
    }
    return null;
  }

  function overlayInfo(el) {
    let node = el;
    while (node && node.nodeType === 1 && node !== document.body && node !== document.documentElement) {
      let type = overlayType(node);
      const fullViewport = isFullViewportFixed(node);
      if (!type && fullViewport) type = 'modal';
      if (type) {
        let closeControl = null;
        try { closeControl = node.querySelector(CLOSE_CONTROL); } catch (e) { closeControl = null; }
        const out = {
          type: type,
          isBackdrop: node === el && fullViewport && (el.children.length === 0 || /backdrop|overlay/.test(classString(el))),
          canDismiss: !!closeControl || DISMISSIBLE.includes(type),
          container: buildSelector(node)
        };
        if (node.id) {
          let trigger = null;
          try { trigger = document.querySelector('[aria-controls="' + esc(node.id) + '"]'); } catch (e) { trigger = null; }
          if (trigger) out.triggeredBy = buildSelector(trigger);
        }
        return out;
      }
      node = parentOf(node);
    }
    return null;
  }

  function stackingInfo(el, x, y) {
    const cs = getComputedStyle(el);
    const z = String(cs.zIndex);
    const createsContext = (z !== 'auto' && cs.position !== 'static') || parseFloat(cs.opacity) < 1 ||
      cs.transform !== 'none' || cs.isolation === 'isolate' || cs.position === 'fixed' || cs.position === 'sticky';
    const stack = (document.elementsFromPoint(x, y) || []).slice(0, 5).map((n) => ({
      selector: buildSelector(n), description: describe(n), zIndex: String(getComputedStyle(n).zIndex)
    }));
    if (z === 'auto' && !createsContext && !stack.some((s) => s.zIndex !== 'auto')) return null;
    return { zIndex: z, createsContext: createsContext, stack: stack };
  }

  function iframeInfo(el) {
    if (el.tagName !== 'IFRAME' && el.tagName !== 'FRAME') return null;
    let crossOrigin = false;
    try { crossOrigin = !el.contentDocument; } catch (e) { crossOrigin = true; }
    const out = { src: String(el.src || el.getAttribute('src') || ''), sandboxed: el.hasAttribute('sandbox'), crossOrigin: crossOrigin };
    if (el.name) out.name = String(el.name);
    return out;
  }

  function shadowInfo(el) {
    const root = el.getRootNode ? el.getRootNode() : document;
    const inShadow = !!(root && root !== document && root.host);
    const hasRoot = !!el.shadowRoot;
    if (!inShadow && !hasRoot) return null;
    const out = { inShadowDOM: inShadow, hasShadowRoot: hasRoot };
    if (inShadow) {
      out.host = buildSelector(root.host);
      out.hostDescription = describe(root.host);
      out.mode = String(root.mode || 'open');
    }
    if (hasRoot) {
      out.shadowChildCount = el.shadowRoot.children.length;
      if (!inShadow) out.mode = String(el.shadowRoot.mode || 'open');
    }
    return out;
  }

  function scrollInfo(el) {
    const cs = getComputedStyle(el);
    const scrollY = /(auto|scroll|overlay)/.test(cs.overflowY) && el.scrollHeight > el.clientHeight;
    const scrollX = /(auto|scroll|overlay)/.test(cs.overflowX) && el.scrollWidth > el.clientWidth;
    const r = el.getBoundingClientRect();
    const visW = Math.max(0, Math.min(r.right, window.innerWidth) - Math.max(r.left, 0));
    const visH = Math.max(0, Math.min(r.bottom, window.innerHeight) - Math.max(r.top, 0));
    const area = r.width * r.height;
    const pct = area > 0 ? Math.round((visW * visH / area) * 100) : 0;
    const scrollable = scrollY || scrollX;
    if (!scrollable && el.scrollTop === 0 && el.scrollLeft === 0 && pct >= 100) return null;
    return {
      isScrollable: scrollable,
      scrollTop: Math.round(el.scrollTop), scrollLeft: Math.round(el.scrollLeft),
      scrollHeight: el.scrollHeight, scrollWidth: el.scrollWidth,
      inViewport: visW > 0 && visH > 0,
      visiblePercentage: pct
    };
  }
"""

FRAMEWORK_DETECTION_JS = r"""
  const MAX_DOM_DEPTH = 10;
  const MAX_LINKS = 20;
  const MAX_COMPONENTS = 3;
  const MAX_PROPS = 10;

  function shallowProps(props) {
    if (!props || typeof props !== 'object') return null;
    const out = {};
    let n = 0;
    for (const key of Object.keys(props)) {
      if (n >= MAX_PROPS) break;
      if (key === 'children') continue;
      const v = props[key];
      if (typeof v === 'function' || typeof v === 'symbol') continue;
      if (v && typeof v === 'object') {
        if (v.nodeType || v.$$typeof || v instanceof Window) continue;
        out[key] = Array.isArray(v) ? '[Array(' + v.length + ')]' : '[Object]';
      } else if (typeof v === 'string') {
        out[key] = v.length > 100 ? v.slice(0, 100) + '...' : v;
      } else {
        out[key] = v === undefined ? null : v;
      }
      n++;
    }
    return Object.keys(out).length ? out : null;
  }

  function component(name, file, line, props) {
    const c = { name: name || 'Anonymous' };
    if (file) c.file = String(file);
    if (typeof line === 'number') c.line = line;
    const p = shallowProps(props);
    if (p) c.props = p;
    return c;
  }

  function reactInfo(el) {
    let node = el;
    for (let depth = 0; node && depth < MAX_DOM_DEPTH; depth++, node = node.parentElement) {
      const key = Object.keys(node).find((k) => k.startsWith('__reactFiber$') || k.startsWith('__reactInternalInstance$'));
      if (!key) continue;
      const components = [];
      let fiber = node[key];
      for (let hops = 0; fiber && hops < MAX_LINKS && components.length < MAX_COMPONENTS; hops++, fiber = fiber.return) {
        const t = fiber.type;
        if (!t || typeof t === 'string') continue;
        const fn = typeof t === 'function' ? t : (t.render || t.type);
        if (typeof t !== 'function' && !fn) continue;
        const name = t.displayName || (fn && (fn.displayName || fn.name));
        const src = fiber._debugSource || null;
        components.push(component(name, src && src.fileName, src && src.lineNumber, fiber.memoizedProps));
      }
      return { name: 'react', components: components };
    }
    return null;
  }

  function vueInfo(el) {
    let node = el;
    for (let depth = 0; node && depth < MAX_DOM_DEPTH; depth++, node = node.parentElement) {
      const v3 = node.__vueParentComponent || null;
      const v2 = node.__vue__ || null;
      if (!v3 && !v2) continue;
      const components = [];
      if (v3) {
        let c = v3;
        for (let hops = 0; c && hops < MAX_LINKS && components.length < MAX_COMPONENTS; hops++, c = c.parent) {
          const t = c.type || {};
          const file = t.__file || null;
          const name = t.name || t.__name || (file ? file.split('/').pop().replace(/\.vue$/, '') : null);
          components.push(component(name, file, null, c.props));
        }
      } else {
        let c = v2;
        for (let hops = 0; c && hops < MAX_LINKS && components.length < MAX_COMPONENTS; hops++, c = c.$parent) {
          const o = c.$options || {};
          components.push(component(o.name || o._componentTag, o.__file, null, c.$props));
        }
      }
      return { name: 'vue', components: components };
    }
    return null;
  }

  function svelteInfo(el) {
    let node = el;
    for (let depth = 0; node && depth < MAX_DOM_DEPTH; depth++, node = node.parentElement) {
      const meta = node.__svelte_meta;
      if (!meta) continue;
      const loc = meta.loc || {};
      const file = loc.file || null;
      const name = file ? file.split('/').pop().replace(/\.svelte$/, '') : null;
      return { name: 'svelte', components: [component(name, file, typeof loc.line === 'number' ? loc.line + 1 : null, null)] };
    }
    return null;
  }

  function angularInfo(el) {
    const ng = window.ng;
    if (ng && typeof ng.getComponent === 'function') {
      let node = el;
      for (let depth = 0; node && depth < MAX_DOM_DEPTH; depth++, node = node.parentElement) {
        let inst = null;
        try { inst = ng.getComponent(node); } catch (e) { inst = null; }
        if (inst) {
          return { name: 'angular', components: [component(inst.constructor && inst.constructor.name, null, null, null)] };
        }
      }
    }
    if (document.querySelector('[ng-version]')) return { name: 'angular', components: [] };
    return null;
  }

  function frameworkInfo(el) {
    return reactInfo(el) || vueInfo(el) || svelteInfo(el) || angularInfo(el);
  }

  function extendedInfo(el, x, y) {
    const info = baseInfo(el);
    const enrich = {
      framework: frameworkInfo(el),
      overlay: overlayInfo(el),
      stacking: stackingInfo(el, x, y),
      iframe: iframeInfo(el),
      shadowDOM: shadowInfo(el),
      scroll: scrollInfo(el)
    };
    for (const key of Object.keys(enrich)) {
      if (enrich[key]) info[key] = enrich[key];
    }
    return info;
  }
"""

SELECTOR_BODY_JS = r"""
  let el = null;
  try {
    el = document.querySelector(selector);
  } catch (e) {
    return { __lensError: 'invalid_selector', message: String((e && e.message) || e) };
  }
  if (!el) return null;
  window.__lensLastElement = el;
  return baseInfo(el);
"""

POINT_BODY_JS = r"""
  let el = document.elementFromPoint(x, y);
  if (!el) return null;
  while (el.shadowRoot) {
    const inner = el.shadowRoot.elementFromPoint(x, y);
    if (!inner || inner === el) break;
    el = inner;
  }
  window.__lensLastElement = el;
  return extendedInfo(el, x, y);
"""

LAST_BODY_JS = r"""
  const el = window.__lensLastElement;
  if (!el || !el.isConnected) return null;
  const r = el.getBoundingClientRect();
  return extendedInfo(el, r.x + r.width / 2, r.y + r.height / 2);
"""

BASE_PRELUDE = BASE_HELPERS_JS
EXTENDED_PRELUDE = BASE_HELPERS_JS + EDGE_CASE_HELPERS_JS + FRAMEWORK_DETECTION_JS

__all__ = [
    "BASE_HELPERS_JS",
    "BASE_PRELUDE",
    "EDGE_CASE_HELPERS_JS",
    "EXTENDED_PRELUDE",
    "FRAMEWORK_DETECTION_JS",
    "LAST_BODY_JS",
    "POINT_BODY_JS",
    "SELECTOR_BODY_JS",
]
