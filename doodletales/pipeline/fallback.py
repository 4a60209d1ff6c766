"""
Canned stories returned when page generation fails entirely.
"""

from __future__ import annotations

from doodletales.story_generation import normalize_language

_FALLBACK_STORIES = {
    "english": (
        "Once upon a time, there was a magical drawing that came to life! "
        "Your wonderful creation - {description} - became the hero of an incredible adventure.\n\n"
        "Through enchanted forests and over sparkling mountains, our brave character discovered "
        "that every line and color in the drawing held special powers. Along the way, they met "
        "friendly creatures who became the best of friends.\n\n"
        "Together, they learned that imagination is the most powerful magic of all. Every stroke "
        "of creativity can build bridges between dreams and reality, creating stories that last forever.\n\n"
        "The End."
    ),
    "spanish": (
        "¡Había una vez un dibujo mágico que cobró vida! "
        "Tu maravillosa creación - {description} - se convirtió en el héroe de una aventura increíble.\n\n"
        "A través de bosques encantados y sobre montañas brillantes, nuestro valiente personaje "
        "descubrió que cada línea y color del dibujo tenía poderes especiales. En el camino, "
        "conoció criaturas amigables que se convirtieron en sus mejores amigos.\n\n"
        "Juntos aprendieron que la imaginación es la magia más poderosa de todas.\n\n"
        "Fin."
    ),
    "french": (
        "Il était une fois un dessin magique qui a pris vie ! "
        "Ta merveilleuse création - {description} - est devenue le héros d'une aventure incroyable.\n\n"
        "À travers des forêts enchantées et par-dessus des montagnes scintillantes, notre brave "
        "personnage a découvert que chaque ligne et chaque couleur du dessin avait des pouvoirs "
        "spéciaux. En chemin, il a rencontré des créatures amicales devenues ses meilleurs amis.\n\n"
        "Ensemble, ils ont appris que l'imagination est la magie la plus puissante de toutes.\n\n"
        "Fin."
    ),
    "chinese": (
        "从前，有一幅神奇的画活了过来！你的精彩创作——{description}——成为了一场奇妙冒险的主角。\n\n"
        "穿过魔法森林，越过闪闪发光的山脉，我们勇敢的主角发现画中的每一条线、每一种颜色都拥有特殊的力量。"
        "一路上，它遇到了友善的小伙伴，成为了最好的朋友。\n\n"
        "他们一起明白了：想象力是世界上最强大的魔法。\n\n"
        "完。"
    ),
}


def fallback_story_text(description: str, language: str) -> str:
    """
    Return the canned story for ``language`` with the child's description woven in.
    """
    try:
        key = normalize_language(language)
    except ValueError:
        key = "english"
    subject = " ".join((description or "").split()) or "a wonderful drawing"
    return _FALLBACK_STORIES[key].format(description=subject)
