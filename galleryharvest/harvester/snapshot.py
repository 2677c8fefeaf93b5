"""
Browser-side scripts for the harvester.

This module contains JavaScript executed in the page:

- FORCE_INTERSECTING_JS: init script that makes every lazy loader think
  its element is on screen
- SNAPSHOT_MEDIA_JS: returns every visible image, video and large
  background-image tile with page coordinates and a stable id
"""

# Installed before any page script runs
FORCE_INTERSECTING_JS = r"""
(() => {
  window.IntersectionObserver = class ForcedIntersectionObserver {
    constructor(cb) { this._cb = cb; }
    observe(el) {
      try { this._cb([{ isIntersecting: true, target: el, intersectionRatio: 1 }], this); } catch (e) {}
    }
    unobserve() {}
    disconnect() {}
    takeRecords() { return []; }
  };
  window.IntersectionObserverEntry = function () {};
})();
"""

# Minimum rendered size (px) for a background-image element to count as a tile
MIN_TILE_PX = 120

SNAPSHOT_MEDIA_JS = r"""
(minTile) => {
  const out = [];
  const root =
    document.querySelector("main") ||
    document.querySelector("#__next") ||
    document.body;
  if (!root) return out;

  const stableIdOf = (el) => {
    const holder = el.closest("[data-id],[data-item-id],[data-element-id]");
    if (holder) {
      return holder.getAttribute("data-id")
        || holder.getAttribute("data-item-id")
        || holder.getAttribute("data-element-id");
    }
    const a = el.closest("a[href]");
    return a ? a.getAttribute("href") : null;
  };

  const pos = (el) => {
    const r = el.getBoundingClientRect();
    return { rect: r, top: r.top + window.scrollY, left: r.left + window.scrollX };
  };

  const bestFromSrcset = (img) => {
    if (img.currentSrc) return img.currentSrc;
    const ss = img.getAttribute("srcset");
    if (!ss) return img.getAttribute("src") || "";
    const best = ss.split(",")
      .map(s => s.trim().split(/\s+/))
      .map(([url, size]) => ({ url, w: size && size.endsWith("w") ? parseInt(size, 10) || 0 : 0 }))
      .sort((a, b) => b.w - a.w)[0];
    return (best && best.url) || img.getAttribute("src") || "";
  };

  const bgUrl = (el) => {
    const bg = getComputedStyle(el).backgroundImage || "";
    const m = bg.match(/url\((['"]?)(.*?)\1\)/i);
    return m ? m[2] : "";
  };

  root.querySelectorAll("img").forEach(img => {
    const src = bestFromSrcset(img);
    if (!src) return;
    const p = pos(img);
    out.push({
      type: "image", src, poster: null, top: p.top, left: p.left,
      width: img.naturalWidth || 0, height: img.naturalHeight || 0,
      stableId: stableIdOf(img),
    });
  });

  root.querySelectorAll("video").forEach(v => {
    const source = v.querySelector("source");
    const src = v.currentSrc || v.src || (source && source.src) || "";
    if (!src) return;
    const p = pos(v);
    out.push({
      type: "video", src, poster: v.poster || null, top: p.top, left: p.left,
      width: v.videoWidth || 0, height: v.videoHeight || 0,
      stableId: stableIdOf(v),
    });
  });

  root.querySelectorAll("*").forEach(el => {
    const src = bgUrl(el);
    if (!src) return;
    const p = pos(el);
    if (p.rect.width < minTile || p.rect.height < minTile) return;
    out.push({
      type: "image", src, poster: null, top: p.top, left: p.left,
      width: Math.round(p.rect.width) || 0, height: Math.round(p.rect.height) || 0,
      stableId: stableIdOf(el),
    });
  });

  return out;
}
"""
