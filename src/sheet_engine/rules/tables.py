"""Edge-case rule tables.

Game-content data, one table per rule category, keyed by display name.
Keys are normalized when the catalog is built, so they may keep their
punctuation ("hunter's mark (2024)"). Each record carries a ``type``
discriminator plus the fields of that rule shape; see
``sheet_engine.rules.catalog`` for the shapes.

A name suffixed with `` (2014)`` or `` (2024)`` is the ruleset-specific
variant of the unsuffixed entry.
"""

from __future__ import annotations

from typing import Any


RuleTable = dict[str, dict[str, Any]]

_HEALING = "Healing spell that announces usage"
_TOO_COMPLICATED = "Too complicated for normal casting - requires DM intervention"
_REUSABLE = "Can be recast without using spell slot"
_CONDITIONAL = "Has conditional/situational damage - adds Cast button"


# =============================================================================
# Spells
# =============================================================================

SPELL_RULES: RuleTable = {
    # Healing announcements
    "cure wounds": {"type": "healing_announcement", "description": _HEALING},
    "healing word": {"type": "healing_announcement", "description": _HEALING},
    "lesser restoration": {"type": "healing_announcement", "description": _HEALING},
    "mass cure wounds": {"type": "healing_announcement", "description": _HEALING},
    "mass healing word": {"type": "healing_announcement", "description": _HEALING},
    "heal": {"type": "healing_announcement", "description": _HEALING},
    "regenerate": {"type": "healing_announcement", "description": _HEALING},
    "mass heal": {"type": "healing_announcement", "description": _HEALING},
    # Too complicated to model
    "wish": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "true polymorph": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "shapechange": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "plane shift": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "teleport": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "contingency": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "glyph of warding": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "simulacrum": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "gate": {"type": "too_complicated", "description": _TOO_COMPLICATED},
    "time stop": {
        "type": "too_complicated",
        "description": _TOO_COMPLICATED,
        "ruleset": "2014",
        "notes": "1d4+1 rounds",
    },
    "time stop (2024)": {
        "type": "too_complicated",
        "description": _TOO_COMPLICATED,
        "ruleset": "2024",
        "notes": "1d4+1 turns (changed from rounds)",
    },
    "summon beast": {
        "type": "too_complicated",
        "description": _TOO_COMPLICATED,
        "ruleset": "2024",
        "notes": "2024 standardized summoning spell",
    },
    "counterspell (2024)": {
        "type": "too_complicated",
        "description": _TOO_COMPLICATED,
        "ruleset": "2024",
        "notes": "Different DC calculation in 2024",
    },
    "healing spirit (2024)": {
        "type": "too_complicated",
        "description": _TOO_COMPLICATED,
        "ruleset": "2024",
        "notes": "Nerfed heavily in 2024",
    },
    # Conditional damage
    "symbol": {"type": "conditional_damage", "description": _CONDITIONAL},
    "meld into stone": {"type": "conditional_damage", "description": _CONDITIONAL},
    "geas": {"type": "conditional_damage", "description": _CONDITIONAL},
    # Reusable (maintained) spells
    "spiritual weapon": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2014",
        "notes": "Bonus action to summon, separate action to attack",
    },
    "spiritual weapon (2024)": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "Bonus action to summon AND attack on same turn",
    },
    "mage armor": {"type": "reusable", "description": _REUSABLE},
    "shield": {"type": "reusable", "description": _REUSABLE},
    "detect magic": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2014",
        "notes": "Standard casting",
    },
    "detect magic (2024)": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "Now a ritual spell",
    },
    "guidance": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2014",
        "notes": "Action, must be used before roll",
    },
    "guidance (2024)": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "Reaction, can be used after the roll",
    },
    "resistance": {"type": "reusable", "description": _REUSABLE},
    "light": {"type": "reusable", "description": _REUSABLE},
    "fire bolt": {"type": "reusable", "description": _REUSABLE},
    "ray of frost": {"type": "reusable", "description": _REUSABLE},
    "toll the dead": {"type": "reusable", "description": _REUSABLE},
    "sacred flame": {"type": "reusable", "description": _REUSABLE},
    "eldritch blast": {"type": "reusable", "description": _REUSABLE},
    "true strike": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2014",
        "notes": "Advantage on next attack roll",
    },
    "true strike (2024)": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "Advantage on next attack within same turn + extra damage",
    },
    "arcane vigor": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "New 2024 cantrip - grants temporary HP",
    },
    "hunter's mark (2024)": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "Now a spell known for free, concentration changes",
    },
    "hex (2024)": {
        "type": "reusable",
        "description": _REUSABLE,
        "ruleset": "2024",
        "notes": "Similar to Hunter's Mark changes",
    },
}


# =============================================================================
# Class features
# =============================================================================

CLASS_FEATURE_RULES: RuleTable = {
    # Barbarian
    "rage": {
        "type": "resource_tracking",
        "resource": "rage_points",
        "max_resource": "barbarian_level",
        "description": "Ends if no attack or damage since last turn",
    },
    "reckless attack": {
        "type": "advantage_disadvantage",
        "description": "Advantage on attacks, disadvantage on attacks against you",
    },
    "danger sense": {
        "type": "conditional_advantage",
        "condition": "can_see_dex_save_source",
        "description": "Advantage on Dex saves if you can see the source",
    },
    "retaliation": {
        "type": "reaction",
        "timing": "when_damaged_within_5ft",
        "description": "Reaction melee attack when damaged within 5ft",
    },
    # Fighter
    "action surge": {"type": "bonus_action", "description": "Take one additional action on your turn"},
    "second wind": {"type": "healing", "description": "Bonus action to regain HP"},
    "indomitable": {
        "type": "save_reroll",
        "trigger": "failed_save",
        "description": "Reroll a failed save",
    },
    "riposte": {
        "type": "reaction",
        "timing": "when_melee_attack_misses_you",
        "description": "Reaction attack when melee attack misses you",
    },
    # Rogue
    "sneak attack": {
        "type": "conditional_damage",
        "condition": "advantage_or_ally_within_5ft",
        "damage_formula": "sneak_attack_dice",
        "description": "Extra damage with advantage or ally adjacent",
    },
    "cunning action": {"type": "bonus_action", "description": "Dash/Disengage/Hide as bonus action"},
    "uncanny dodge": {
        "type": "reaction",
        "timing": "when_hit_by_attack_you_can_see",
        "description": "Reaction to halve damage when hit",
    },
    "evasion": {
        "type": "save_modifier",
        "description": "Dex save: no damage on success, half on failure",
    },
    "slippery mind": {
        "type": "save_reroll",
        "trigger": "failed_wisdom_save",
        "description": "Reaction to succeed on failed Wis save",
    },
    # Monk
    "patient defense": {"type": "bonus_action", "description": "Bonus action: Dodge for 1 ki"},
    "step of the wind": {
        "type": "bonus_action",
        "description": "Bonus action: Disengage/Dash + double jump distance",
    },
    "deflect missiles": {
        "type": "reaction",
        "timing": "when_hit_by_ranged_weapon",
        "description": "Reduce ranged damage, can throw back for 1 ki",
    },
    "diamond soul": {
        "type": "save_reroll",
        "trigger": "failed_save",
        "description": "Reroll failed save for 1 ki",
    },
    "purity of body": {"type": "immunity", "description": "Immune to poison and disease"},
    # Paladin
    "divine smite": {
        "type": "resource_damage",
        "resource": "spell_slot",
        "damage_formula": "2d8 + 1d8_per_spell_level_above_1st",
        "damage_type": "radiant",
        "description": "Expend spell slot for extra radiant damage",
    },
    "lay on hands": {"type": "healing_pool", "description": "Heal from pool (5 × level total)"},
    "aura of protection": {"type": "save_bonus", "description": "Allies within 10ft add Cha mod to saves"},
    # Ranger
    "colossus slayer": {
        "type": "conditional_damage",
        "condition": "hit_creature_below_max_hp",
        "damage_formula": "1d8",
        "description": "Extra 1d8 damage vs creatures below max HP",
    },
    "multiattack defense": {
        "type": "defense_bonus",
        "description": "+4 AC against subsequent attacks from same attacker",
    },
    # Cleric
    "channel divinity": {
        "type": "resource_feature",
        "description": "Domain-specific abilities (uses reset on short rest)",
    },
    "divine intervention": {
        "type": "utility_dm_discretion",
        "description": "Deity intervention on successful d100 roll",
    },
    # Wizard
    "arcane recovery": {
        "type": "resource_recovery",
        "description": "Recover spell slots during short rest",
    },
    "portent": {"type": "roll_replacement", "description": "Replace roll with portent die"},
    # Sorcerer
    "font of magic": {
        "type": "resource_recovery",
        "description": "Regain half sorcery points on short rest",
    },
    # Bard
    "bardic inspiration": {"type": "resource_die", "description": "Give d6/d8/d10/d12 to add to rolls"},
    "jack of all trades": {
        "type": "skill_bonus",
        "condition": "non_proficient_ability_checks",
        "description": "Add half prof bonus to non-proficient checks",
    },
    # Druid
    "wild shape": {
        "type": "transformation",
        "description": "Transform into beast, revert with previous HP at 0 HP",
    },
}


# =============================================================================
# Racial features
# =============================================================================

RACIAL_RULES: RuleTable = {
    "lucky": {
        "type": "reroll",
        "description": "Reroll 1s on attacks/saves/checks (self or ally within 30ft)",
    },
    "lucky (2024)": {
        "type": "advantage",
        "ruleset": "2024",
        "description": "Now gives advantage instead of rerolls",
    },
    "brave": {
        "type": "save_advantage",
        "condition": "save_against_frightened",
        "description": "Advantage on saves against being frightened",
    },
    "gnome cunning": {
        "type": "save_advantage",
        "save_types": ["intelligence", "wisdom", "charisma"],
        "description": "Advantage on Int/Wis/Cha saves",
    },
    "stonecunning": {
        "type": "skill_bonus",
        "condition": "intelligence_check_recall_information_about_stonework",
        "description": "Double prof bonus on stonework history checks",
    },
    "cat's talent": {
        "type": "skill_bonus",
        "skills": ["stealth", "perception"],
        "description": "Double prof bonus in Stealth and Perception",
    },
    "breath weapon": {
        "type": "area_damage",
        "description": "Cone/line damage, Dex save for half",
    },
    "damage resistance": {
        "type": "damage_resistance",
        "damage_types": ["chosen_draconic_ancestry"],
        "description": "Resistance to chosen damage type",
    },
    "hellish resistance": {
        "type": "damage_resistance",
        "damage_types": ["fire"],
        "description": "Fire resistance",
    },
    "innate spellcasting": {
        "type": "innate_magic",
        "spells": ["thaumaturgy", "hellish_rebuke", "darkness"],
        "description": "Innate ability to cast Thaumaturgy, Hellish Rebuke, Darkness",
    },
    "fey magic": {
        "type": "innate_magic",
        "spells": ["druidcraft", "charm_person"],
        "description": "Innate Druidcraft + Charm Person",
    },
    "healing hands": {
        "type": "healing",
        "description": "Heal HP equal to your level (once per long rest)",
    },
    "relentless endurance": {
        "type": "death_prevention",
        "description": "Drop to 1 HP instead of 0 (once per long rest)",
    },
    "bite": {
        "type": "natural_weapon",
        "damage_formula": "1d4",
        "damage_type": "piercing",
        "description": "Natural bite attack",
    },
    "cat's claws": {
        "type": "natural_weapon",
        "damage_formula": "1d4",
        "damage_type": "slashing",
        "description": "Natural claw attacks (unarmed)",
    },
    "limited telepathy": {
        "type": "telepathy",
        "range": "30_feet",
        "description": "30ft telepathy with creatures that know a language",
    },
    "flight": {
        "type": "flight",
        "speed": "walking_speed",
        "limitation": "medium_armor_only",
        "description": "Fly at walking speed (medium armor only)",
    },
    "wings of the raven": {
        "type": "flight",
        "speed": "30_feet",
        "limitation": "no_heavy_armor",
        "description": "30ft fly speed (no heavy armor)",
    },
    "tortle natural armor": {"type": "defense_bonus", "description": "Natural armor AC 17"},
}


# =============================================================================
# Combat maneuvers
# =============================================================================

COMBAT_MANEUVER_RULES: RuleTable = {
    # Standard actions
    "grapple": {
        "type": "contest_check",
        "attack_type": "athletics",
        "defense_type": "athletics_or_acrobatics",
        "description": "Athletics vs Athletics/Acrobatics to grapple target",
    },
    "shove": {
        "type": "contest_check",
        "attack_type": "athletics",
        "defense_type": "athletics_or_acrobatics",
        "description": "Athletics vs Athletics/Acrobatics to shove prone or push 5ft",
    },
    "disarm": {
        "type": "contest_check",
        "attack_type": "attack_roll",
        "defense_type": "athletics_or_acrobatics",
        "description": "Attack roll vs Athletics/Acrobatics to disarm target",
    },
    "opportunity attack": {
        "type": "reaction",
        "timing": "when_creature_leaves_your_reach",
        "description": "Reaction attack when creature leaves your reach",
    },
    "dodge": {
        "type": "defensive_action",
        "effects": ["attacks_against_you_have_disadvantage", "dex_saves_advantage"],
        "description": "Disadvantage on attacks vs you + advantage on Dex saves",
    },
    "flanking": {
        "type": "situational_advantage",
        "condition": "ally_opposite_side_of_enemy",
        "description": "Advantage on melee attacks when flanking with ally",
    },
    "help": {
        "type": "advantage_grant",
        "description": "Give ally advantage on next check/attack",
    },
    "two-weapon fighting": {
        "type": "bonus_action_attack",
        "description": "Bonus action attack with offhand light weapon (no mod to damage)",
    },
    "underwater combat": {
        "type": "environmental_modifier",
        "effects": [
            "ranged_weapon_attacks_have_disadvantage",
            "melee_weapon_attacks_with_thrown_weapons_have_disadvantage",
        ],
        "description": "Underwater combat penalties",
    },
    # Battle master maneuvers
    "brace": {
        "type": "reaction_attack",
        "timing": "reaction",
        "description": "Reaction attack when creature moves into reach",
    },
    "commander's strike": {
        "type": "ally_reaction",
        "effect": "ally_reaction_attack",
        "description": "Forgo attack to give ally reaction attack",
    },
    "disarming attack": {
        "type": "attack_with_debuff",
        "save_type": "strength",
        "save_failure": "drops_one_item",
        "description": "Hit + Str save or target drops item",
    },
    "distracting strike": {
        "type": "attack_with_debuff",
        "effect": "next_attack_disadvantage",
        "description": "Hit - next attack vs target has disadvantage",
    },
    "goading attack": {
        "type": "attack_with_debuff",
        "save_type": "wisdom",
        "save_failure": "disadvantage_on_attacks_against_others",
        "description": "Hit - Wis save or target has disadvantage on attacks vs others",
    },
    "evasive footwork": {
        "type": "bonus_action_defense",
        "description": "Move + add superiority die to AC while moving",
    },
    "feinting attack": {
        "type": "bonus_action_setup",
        "description": "Bonus action feint for advantage on next attack",
    },
    "maneuvering attack": {
        "type": "ally_movement",
        "effect": "ally_reaction_move",
        "description": "Hit - ally can use reaction to move half speed",
    },
    "rally": {
        "type": "ally_buff",
        "effect": "temp_hp",
        "description": "Bonus action - ally gains temp HP equal to superiority die",
    },
    "sweeping attack": {
        "type": "area_damage",
        "condition": "hit_creature_with_another_enemy_within_5ft",
        "effect": "damage_to_second_creature",
        "description": "Hit creature - second creature within 5ft takes superiority die damage",
    },
    # Weapon mastery
    "graze": {"type": "weapon_mastery", "description": "Miss still deals damage equal to ability mod"},
    "topple": {"type": "weapon_mastery", "description": "Knock prone on failed CON save"},
    "vex": {"type": "weapon_mastery", "description": "Advantage on next attack vs same target"},
    # Feats
    "alert (2024)": {
        "type": "initiative_bonus",
        "ruleset": "2024",
        "description": "+Initiative equal to proficiency, cannot be surprised",
    },
    "great weapon master (2024)": {
        "type": "attack_option",
        "ruleset": "2024",
        "description": "Redesigned completely",
    },
}


__all__ = [
    "RuleTable",
    "SPELL_RULES",
    "CLASS_FEATURE_RULES",
    "RACIAL_RULES",
    "COMBAT_MANEUVER_RULES",
]
