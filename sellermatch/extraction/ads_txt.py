"""
Seller id extraction from ads.txt / app-ads.txt content.

A line such as ``adwmg.com, 1234, DIRECT`` declares seller
``1234`` for the ad system named in the first field.  Only lines
mentioning the configured seller domain are considered, and the
second field is reduced to its digits.

``EXTRACT_SELLER_IDS_JS`` is the same routine for injection into
a page, where the files are fetched same-origin by the page
itself.
"""

from __future__ import annotations

import re

ADS_TXT_FILES = ("ads.txt", "app-ads.txt")
DEFAULT_SELLER_DOMAIN = "adwmg"

_NON_DIGITS = re.compile(r"\D")


def extract_seller_ids(text: str | None, seller_domain: str = DEFAULT_SELLER_DOMAIN) -> set[str]:
    """Return the seller ids declared for *seller_domain* in *text*."""
    ids: set[str] = set()
    if not text:
        return ids

    marker = seller_domain.lower()
    for raw in text.split("\n"):
        if marker not in raw.lower():
            continue
        parts = [p.strip() for p in raw.split(",")]
        if len(parts) < 2:
            continue
        seller_id = _NON_DIGITS.sub("", parts[1])
        if seller_id:
            ids.add(seller_id)
    return ids


# Evaluated with ``page.evaluate(EXTRACT_SELLER_IDS_JS, {timeoutMs, sellerDomain, files})``.
# Resolves to ``{ok: boolean, ids: string[]}``.
EXTRACT_SELLER_IDS_JS = """
async ({ timeoutMs, sellerDomain, files }) => {
    const fetchWithTimeout = (url) => new Promise((resolve) => {
        const controller = new AbortController();
        const timer = setTimeout(() => { controller.abort(); resolve(null); }, timeoutMs);
        fetch(url, { signal: controller.signal, credentials: "same-origin" })
            .then((r) => {
                clearTimeout(timer);
                if (!r.ok) return resolve(null);
                r.text().then(resolve).catch(() => resolve(null));
            })
            .catch(() => { clearTimeout(timer); resolve(null); });
    });

    const marker = String(sellerDomain).toLowerCase();
    const extract = (text, into) => {
        if (!text) return;
        for (const raw of text.split("\\n")) {
            if (!raw.toLowerCase().includes(marker)) continue;
            const parts = raw.split(",").map((p) => p.trim());
            if (parts.length < 2) continue;
            const id = parts[1].replace(/\\D/g, "");
            if (id.length > 0) into.add(id);
        }
    };

    try {
        const origin = location.origin;
        if (!/^https?:\\/\\//i.test(origin)) return { ok: false, ids: [] };
        const base = origin.replace(/\\/$/, "");
        const texts = await Promise.all(files.map((name) => fetchWithTimeout(base + "/" + name)));
        const ids = new Set();
        for (const text of texts) extract(text, ids);
        return { ok: true, ids: Array.from(ids) };
    } catch (e) {
        return { ok: false, ids: [] };
    }
}
"""
