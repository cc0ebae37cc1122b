# -*- coding: utf-8 -*-
"""Dream-focused prompt template applied before submission."""

from __future__ import annotations

from errors import ValidationError

PLACEHOLDER = "{{user_dream_notes}}"

DREAM_PROMPT_TEMPLATE = f"""Create a short cinematic video inspired by this dream:

{PLACEHOLDER}

The video should capture the feeling, imagery, and emotion of the dream more than the literal events. Use rich visual symbolism, smooth transitions, and dreamlike logic, blending realism with surrealism.

Tone & Mood: ethereal, introspective, and slightly uncanny, like a lucid dream that shifts between familiar places and impossible landscapes.

Style: cinematic realism with subtle surreal effects (floating objects, gravity shifts, morphing architecture, glowing light sources).

Camera: slow, fluid movement, like the viewer is drifting through the dream. Use shallow depth of field, dynamic lighting, and organic motion.

Sound: ambient, emotional score matching the tone of the dream.

Length: 15-30 seconds.

End with a smooth fade-out, as if the dream is slipping away on waking."""


def render_dream_prompt(notes: str) -> str:
    """Inject the user's dream notes into the template."""
    if not notes or not notes.strip():
        raise ValidationError("User dream notes cannot be empty")
    return DREAM_PROMPT_TEMPLATE.replace(PLACEHOLDER, notes.strip())


def is_prompt_rendered(prompt: str) -> bool:
    return PLACEHOLDER not in prompt
