"""
Sample specials configs for catalog, engine and CLI tests.
"""

# ============================================================================
# Valid config
# ============================================================================

VALID_CONFIG = """
settings:
  data-folder: data
  autosave-interval-seconds: 60

specials:
  emerald_boost:
    trigger:
      type: ITEM_PICKUP
      item-type: minecraft:emerald
    section:
      allowed-sections: [mining, caves]
      require-type: underground
      min-index: 2
      max-index: 5
    reward:
      speed-bonus-percent: 800
      speed-bonus-skip-seconds: 10
    messages:
      player: "{player} unlocked {special}!"
      broadcast: "{player} found an emerald"

  dragon_slayer:
    trigger:
      type: entity-death
      entity-type: ender_dragon
    section:
      applies-to-all-sections: true
    scope:
      once-per-server: true
    reward:
      auto-complete-section: true
      session-time-skip-seconds: 30

  any_kill:
    trigger:
      type: entity-death
    section:
      applies-to-all-sections: true
    reward:
      speed-bonus-percent: 50

  deep_dive:
    trigger:
      type: item-pickup
      item-type: prismarine_shard
    section:
      applies-to-all-sections: true
    potion-requirement:
      effect: night_vision
      min-amplifier: 1
    reward:
      speed-bonus-percent: 100

  ancient_codex:
    trigger:
      type: unlock-entry
      entry-id: codex/ancient_city
    section:
      applies-to-all-sections: true
    reward:
      default-time-skip: true

  haste_rush:
    trigger:
      type: status-effect
      effect: haste
      min-amplifier: 2
    section:
      applies-to-all-sections: true
    reward:
      speed-bonus-percent: 25

  admin_grant:
    trigger:
      type: command
    section:
      applies-to-all-sections: true
    reward:
      speed-bonus-percent: 150
      speed-bonus-skip-seconds: 5

  first_claim:
    trigger:
      type: command
    section:
      applies-to-all-sections: true
    scope:
      once-per-server: true
    reward:
      speed-bonus-percent: 10

encounters:
  bounty_hunter:
    victim: player
    max-count: 2
    session-time-skip-seconds: 15
    messages:
      player: "Bounty {count} claimed by {player}"

activity:
  housing_build:
    section: housing
    skip-seconds: 1
    speed-percent: 5
    cooldown-seconds: 1
    distinct-location: true
    reason: Housing progress
"""


# ============================================================================
# Invalid entries (each skipped with a warning)
# ============================================================================

MIXED_CONFIG = """
specials:
  good_one:
    trigger:
      type: item-pickup
      item-type: diamond
    section:
      applies-to-all-sections: true
    reward:
      speed-bonus-percent: 20

  legacy_pickup:
    trigger:
      type: ENTITY_PICKUP
      item-type: gold_ingot
    section:
      allowed-sections: [mining]

  no_trigger:
    section:
      applies-to-all-sections: true

  bad_type:
    trigger:
      type: block-break
    section:
      applies-to-all-sections: true

  no_target:
    trigger:
      type: item-pickup
      item-type: diamond
    section:
      require-type: underground

  no_section:
    trigger:
      type: item-pickup
      item-type: diamond

  unknown_mob:
    trigger:
      type: entity-death
      entity-type: dragonish_thing
    section:
      applies-to-all-sections: true

  unknown_effect:
    trigger:
      type: item-pickup
      item-type: diamond
    section:
      applies-to-all-sections: true
    potion-requirement:
      effect: super_speed

  negative_bonus:
    trigger:
      type: item-pickup
      item-type: diamond
    section:
      applies-to-all-sections: true
    reward:
      speed-bonus-percent: -5

  not_a_mapping: 42
"""

MIXED_CONFIG_SKIPPED = {
    "no_trigger",
    "bad_type",
    "no_target",
    "no_section",
    "unknown_mob",
    "unknown_effect",
    "negative_bonus",
    "not_a_mapping",
}

REGISTRY_ENTITIES = ["zombie", "ender_dragon", "skeleton"]
REGISTRY_ITEMS = ["diamond", "gold_ingot", "emerald"]
REGISTRY_EFFECTS = ["night_vision", "haste"]

BROKEN_YAML = """
specials:
  oops: [unclosed
"""
