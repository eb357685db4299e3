"""gridcompose: template-driven photo compositing.

Compose a session's captured photos into a fixed layout template and emit
the same composition as an on-screen preview, a print-resolution image and
a shareable export. Layouts live in a versioned YAML catalog.
"""
