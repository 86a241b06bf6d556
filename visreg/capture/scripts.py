"""In-page scripts evaluated by the capture engine."""

from visreg.models.config import CaptureOptions

ELEMENT_EXISTS = "(selector) => document.querySelector(selector) !== null"

USER_AGENT = "() => navigator.userAgent"

DOCUMENT_READY = """
() => new Promise(resolve => {
    if (document.readyState === 'complete') {
        resolve();
    } else {
        window.addEventListener('load', () => resolve());
        setTimeout(resolve, 5000);
    }
})
"""

FONTS_READY = """
() => new Promise(resolve => {
    if (document.fonts && document.fonts.ready) {
        document.fonts.ready.then(() => resolve());
        setTimeout(resolve, 3000);
    } else {
        setTimeout(resolve, 1000);
    }
})
"""

IMAGES_READY = """
() => new Promise(resolve => {
    const pending = Array.from(document.images)
        .filter(img => !img.complete)
        .map(img => new Promise(done => {
            img.addEventListener('load', done, { once: true });
            img.addEventListener('error', done, { once: true });
            setTimeout(done, 5000);
        }));
    Promise.all(pending).then(() => resolve());
    setTimeout(resolve, 10000);
})
"""

INJECT_STYLE = """
(css) => {
    const style = document.createElement('style');
    style.setAttribute('data-visreg', 'capture');
    style.textContent = css;
    (document.head || document.documentElement).appendChild(style);
}
"""

_HIDE_SCROLLBARS_CSS = """
html, body { overflow: hidden !important; }
::-webkit-scrollbar { display: none !important; }
* { scrollbar-width: none !important; }
"""

_DISABLE_ANIMATIONS_CSS = """
*, *::before, *::after {
    animation-duration: 0s !important;
    animation-delay: 0s !important;
    transition-duration: 0s !important;
    transition-delay: 0s !important;
}
"""

_NORMALIZE_RENDERING_CSS = """
* {
    -webkit-font-smoothing: antialiased !important;
    -moz-osx-font-smoothing: grayscale !important;
    text-rendering: optimizeLegibility !important;
}
input, button, select, textarea {
    font-family: inherit !important;
    box-shadow: none !important;
    outline: none !important;
}
"""


def capture_css(options: CaptureOptions) -> str:
    """Stylesheet applying the style-related capture options ('' if none apply)."""
    parts = []
    if options.hide_scrollbars:
        parts.append(_HIDE_SCROLLBARS_CSS)
    if options.disable_animations:
        parts.append(_DISABLE_ANIMATIONS_CSS)
    if options.normalize_rendering:
        parts.append(_NORMALIZE_RENDERING_CSS)
    return "".join(parts)
