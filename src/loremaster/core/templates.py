"""Prompt templates for world generation.

The world is written as a fixed, ordered sequence of sections.  Each section
has a stable key, a display title and a prompt template whose placeholders
are filled from the :class:`~loremaster.core.models.GenerationRequest`:

- ``{animal}`` — the animal the species is modelled on
- ``{culture}`` — the real-world culture the civilization draws from
- ``{spice}`` — the theme that drives the civilization
- ``{species_name}`` — the invented species name
- ``{civilization_name}`` — the invented civilization name

Template order is document page order.  Inputs are substituted as plain text;
no escaping is applied.

Besides the sections, this module holds the portrait template used for image
generation and the naming prompt used to suggest species and civilization
names.

Usage
-----
::

    for template in SECTION_TEMPLATES:
        prompt = template.build_prompt(request)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from loremaster.core.models import GenerationRequest

# ---------------------------------------------------------------------------
# System instructions.
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a creative world-building assistant for fantasy species and civilizations. "
    "Respond in structured Markdown."
)

NAMING_SYSTEM_PROMPT = "You are a creative naming assistant for fantasy species and civilizations."

# ---------------------------------------------------------------------------
# Section prompt bodies.
# ---------------------------------------------------------------------------

_FOUNDATIONS = (
    "You are going to create a civilization of anthropomorphic {animal} called the "
    "{species_name} inspired by the {culture} and the civilization is called "
    "{civilization_name}. Set in a fantasy setting with an earth-like environment but it's "
    "not earth. When creating this civilization, sample the earthly environments / biomes "
    "that the {animal} natively lives in and imagine a fitting anthropomorphic civilization "
    "to live there that is driven by {spice}. Accentuate and caricature the animal features "
    "and skills, the animal attributes are what make the species special. Never use the same "
    "descriptive word more than once per 300 words unless it's thematically necessary. When "
    "describing something, use a mix of sensory details and metaphors instead of repeating "
    "the same phrasing. Do not write conclusion paragraphs. Reference established "
    "{species_name} concepts when appropriate.\n\n"
    "Establish the foundational elements of the civilization, tying them to the {culture} "
    "without directly referencing its real-world equivalent. "
    "- Incorporate the following seed information: {civilization_name}, {species_name}, "
    "{spice}, and {culture}. "
    "- Identify five intriguing and distinctive qualities drawn from the {culture}. "
    "- Transform these five qualities into corresponding elements exclusive to "
    "{civilization_name}. "
    "- Only include the {civilization_name} information; avoid direct mention of the "
    "original {culture}. "
    "- Present these elements under an interesting, thematic title and use Markdown "
    "headings or lists to structure your content. "
    "- Write in vivid prose—focus on showing details and atmosphere rather than explaining "
    "them. "
    "- Do not repeat phrasing or examples from previous responses. "
    "- Never reference Earthly cultures or animals. "
    "- Invent new, culturally relevant names (for people, places, artifacts, or events) in "
    "the native language of the {species_name}."
)

_PHYSIOLOGY = (
    "Introduce the anthropomorphic {animal} species in a way that highlights their unique "
    "physical strengths, weaknesses, and attributes, comparing them to humans without "
    "referencing real-world animals. "
    "- Describe the physical appearance, attributes, and notable features of the "
    "anthropomorphic {animal} species. "
    "- Emphasize physical advantages this species has over humans (e.g., heightened senses, "
    "specialized limbs, natural abilities, etc.). "
    "- Discuss specific traits and abilities, along with any consequences of these "
    "differences (think of it as an RPG stat line). "
    "- Consider the real physiology of the {animal} for inspiration, but do not reference "
    "the actual animal. "
    "- Identify both strengths and weaknesses—no species is perfect. "
    "- Use an engaging, show-don't-tell narrative, formatted in Markdown. "
    "- Avoid repetition from earlier descriptions or prompts. "
    "- Include unique names for important biological or cultural markers in the "
    "{species_name} language."
)

_PANTHEON = (
    "Establish the major deities of the civilization, providing each with a thematic domain "
    "and personality. Avoid using direct words like “authority,” “harbor,” “purpose,” or "
    "“treachery/death,” but capture their essence. "
    "- Create a pantheon of at least four primary gods, each embodying a distinct domain. "
    "- One god should represent leadership or rulership. "
    "- One god should be associated with sanctuary or shelter. "
    "- One god should guide life's meaning or destiny. "
    "- One god should embody the darker side or end of life (e.g., betrayal, finality, or "
    "endings). "
    "- Do not use the explicit words “authority,” “harbor,” “purpose,” or "
    "“treachery/death.” Instead, convey these themes creatively. "
    "- Write a poem or prayer that worshippers recite, reflecting their reverence for the "
    "pantheon. "
    "- Maintain vivid, mythic prose, using Markdown headings. "
    "- Avoid referencing any earthly religion or culture. "
    "- Name each deity, their domains, and any famous holy sites or relics in the native "
    "language of the {species_name}."
)

_HISTORY = (
    "The current year is 1000. Develop a concise but rich historical arc that shapes the "
    "civilization. Highlight pivotal moments that altered the species' development. "
    "- List and summarize eight historical events, from oldest to most recent, that "
    "significantly influenced {species_name} and {civilization_name}. Each event should "
    "include a date and a brief but dramatic summary. "
    "- Show how each event reshaped cultural values, social structure, or political power. "
    "- Use engaging prose and Markdown formatting, such as bullet points or subheadings. "
    "- Do not repeat previous descriptions or refer to real-world history. "
    "- Invent names for key figures and places in the {species_name} language."
)

_TRADITIONS = (
    "Show how the species' beliefs, history, and physiology inform their spiritual and "
    "cultural practices. "
    "- Reflect on the pantheon, physiology, and historical events described so far. "
    "- Summarize six important traditions or rituals practiced by the {species_name} that "
    "reinforce the core beliefs and cultural values of {civilization_name}. "
    "- Focus on showing the ceremonial elements and the community's emotional experience. "
    "- Avoid repetition from previous responses. "
    "- Use creative, ceremonial names for each tradition in the {species_name} language. "
    "- Write in a compelling, show-don't-tell style with Markdown structure."
)

_TECHNOLOGIES = (
    "Integrate technology that aligns with the species' cultural background, environment, "
    "and physiology—avoiding direct modern or human references. "
    "- Introduce six original technologies pioneered by the {species_name}. "
    "- Each should relate to: the native environment of the {culture}; the advantages and "
    "weaknesses of the {species_name} physiology; the significance of {spice} in daily life "
    "or advanced uses. "
    "- Technologies should fit within a fantasy genre that does not use magic, but relies "
    "on the advantages of the animal aspects of the {animal} and the {species_name} "
    "natural capabilities and resourcefulness. "
    "- Briefly explain how each invention changed or influenced the civilization's "
    "development. "
    "- Avoid referencing human or real-world technology directly; instead, adapt or rename "
    "possible parallels. "
    "- Name the technologies using the {species_name} language, and incorporate the "
    "relevant historical context. "
    "- Use Markdown for organization and maintain engaging, creative prose."
)

_TACTICS = (
    "Detail how the species' physical traits shape their tactics, preferred weapons, and "
    "organizational strategy. "
    "- Describe the close-combat fighting style(s) favored by the {species_name}. "
    "- Detail their preferred weapons, inspired by their physiology (e.g., sharper senses, "
    "unusual limbs). "
    "- Outline squad-based tactics and strategic-level combat approaches, referencing the "
    "species' unique advantages. "
    "- Include historical examples of famed battles or skirmishes from {civilization_name}. "
    "- Use creative language for weapon and technique names in the {species_name} tongue. "
    "- Maintain a dramatic, narrative tone in Markdown format. "
    "- Avoid repeating previous information or referencing real-world combat styles."
)

# ---------------------------------------------------------------------------
# Image and naming prompts.
# ---------------------------------------------------------------------------

_PORTRAIT = (
    "An epic portrait of a bipedal anthropomorphic warrior {animal} in clothing inspired "
    "by {culture}, with hints of {spice}. Fantasy art, digital painting, high detail."
)

_NAMING = (
    "You are the Loremaster's naming assistant. Use the animal {animal}, the culture "
    "{culture}, and the spice {spice} to invent a unique fantasy species name and a unique "
    "civilization name. Return them as JSON: "
    '{{"speciesName": "...", "civilizationName": "..."}} without any explanation.'
)


@dataclass(frozen=True)
class SectionTemplate:
    """One section of the world document.

    Attributes:
        key: Stable identifier, also used for image filenames.
        title: Display label used as the page header.
        template: Prompt text with ``str.format`` placeholders.
    """

    key: str
    title: str
    template: str

    def build_prompt(self, request: GenerationRequest) -> str:
        """Substitute every request field into the template."""
        return self.template.format(**asdict(request))


SECTION_TEMPLATES: tuple[SectionTemplate, ...] = (
    SectionTemplate("foundations", "Foundations", _FOUNDATIONS),
    SectionTemplate("physiology", "Physiology", _PHYSIOLOGY),
    SectionTemplate("pantheon", "Pantheon", _PANTHEON),
    SectionTemplate("history", "History", _HISTORY),
    SectionTemplate("traditions", "Traditions", _TRADITIONS),
    SectionTemplate("technologies", "Technologies", _TECHNOLOGIES),
    SectionTemplate("tactics", "Tactics", _TACTICS),
)


def build_portrait_prompt(
    animal: str,
    culture: str,
    spice: str,
    key: str | None = None,
) -> str:
    """Compile the portrait prompt for one image.

    Args:
        animal: Animal the species is modelled on.
        culture: Culture that inspires the clothing.
        spice: Theme hinted at in the portrait.
        key: Optional section key.  When given it is appended as context so
            that each section's portrait varies.

    Returns:
        The image prompt.
    """
    prompt = _PORTRAIT.format(animal=animal, culture=culture, spice=spice)
    if key:
        prompt = f"{prompt} Context: {key}."
    return prompt


def build_naming_prompt(animal: str, culture: str, spice: str) -> str:
    """Compile the prompt that asks for a species and civilization name."""
    return _NAMING.format(animal=animal, culture=culture, spice=spice)
