"""
Creative profiles

Role:
    - Ten fixed creative profiles (educational explainer, anime, UGC, finance, ...)
    - Multi-factor detection of the best profile for an analyzer document
    - Merging a profile's creative defaults into a refined document

Detection scores every profile on prompt keywords, content category, intent, platform,
asset types, duration, asset captions, complexity and explanation needs, then adds the
profile priority so preferred profiles win ties.
"""

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DetectionCriteria:
    keywords: tuple[str, ...]
    content_categories: tuple[str, ...]
    intents: tuple[str, ...]
    asset_types: tuple[str, ...]
    platforms: tuple[str, ...]
    duration_range: tuple[float, float] | None = None


@dataclass(frozen=True)
class CreativeProfile:
    """Fixed creative profile."""

    id: str
    name: str
    description: str
    goal: str
    detection: DetectionCriteria
    creative_direction: dict[str, str]
    workflow_steps: tuple[str, ...]
    quality_targets: dict[str, str]
    recommendations: tuple[dict[str, str], ...]
    asset_requirements: tuple[str, ...] = ()
    style_guidelines: tuple[str, ...] = ()
    priority: int = 0

    def to_summary(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "goal": self.goal, "priority": self.priority}


@dataclass
class ProfileMatch:
    profile: CreativeProfile
    confidence: float
    matched_factors: list[str] = field(default_factory=list)


@dataclass
class ProfileDetectionResult:
    profile: CreativeProfile | None
    confidence: float
    matched_factors: list[str] = field(default_factory=list)
    alternative_profiles: list[ProfileMatch] = field(default_factory=list)
    detection_method: str = "default"  # multi-factor | fallback | default


_ALL_INTENTS = ("image", "video", "mixed")
_ALL_ASSET_TYPES = ("image", "video", "audio")


def _rec(type_: str, text: str, priority: str) -> dict[str, str]:
    return {"type": type_, "recommendation": text, "priority": priority}


# ============================================================
# Profile registry
# ============================================================
EDUCATIONAL_EXPLAINER = CreativeProfile(
    id="educational_explainer",
    name="Educational Explainer",
    description="Clarity + learning impact for educational content",
    goal="Create clear, educational content that maximizes learning impact",
    detection=DetectionCriteria(
        keywords=("explain", "teach", "learn", "tutorial", "how to", "guide", "education", "course", "lesson"),
        content_categories=("educational", "tutorial", "how-to", "academic"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("youtube", "linkedin", "educational"),
        duration_range=(30, 600),
    ),
    creative_direction={
        "core_concept": "Create clear, educational content that maximizes learning impact and retention",
        "visual_approach": "Use clean, professional visuals with clear typography and supporting graphics",
        "style_direction": "Minimalist, professional, and accessible with high contrast and readable fonts",
        "mood_atmosphere": "Authoritative, trustworthy, and engaging with a focus on clarity",
    },
    workflow_steps=(
        "Generate supporting visuals (charts/diagrams if missing)",
        "Create clear narration script",
        "Add educational overlays and bullet points",
        "Implement simple transitions (fade/cut)",
        "Generate subtitles for accessibility",
    ),
    quality_targets={
        "technical_quality_target": "high",
        "creative_quality_target": "professional",
        "consistency_target": "excellent",
        "polish_level_target": "refined",
    },
    recommendations=(
        _rec("audio", "Add clear TTS voiceover narration for accessibility", "required"),
        _rec("visual", "Include charts, diagrams, and bullet overlays for clarity", "required"),
        _rec("accessibility", "Generate subtitles for all spoken content", "required"),
        _rec("style", "Use neutral but professional visual styling", "recommended"),
    ),
    asset_requirements=("narration_audio", "supporting_graphics", "subtitles"),
    style_guidelines=("Clean typography", "High contrast", "Professional color scheme", "Clear visual hierarchy"),
    priority=90,
)

ANIME_MODE = CreativeProfile(
    id="anime_mode",
    name="Anime Mode",
    description="High-energy, stylized anime content",
    goal="Create dynamic, stylized content with anime aesthetics and high energy",
    detection=DetectionCriteria(
        keywords=("anime", "manga", "japanese", "kawaii", "otaku", "weeb", "chibi", "shounen", "shoujo"),
        content_categories=("anime", "manga", "japanese_culture", "gaming"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("tiktok", "instagram", "youtube"),
        duration_range=(15, 180),
    ),
    creative_direction={
        "core_concept": "Create high-energy, stylized content with anime aesthetics and dynamic visual effects",
        "visual_approach": "Apply anime art style with vibrant colors, dynamic compositions, and stylized effects",
        "style_direction": "Anime-inspired with bold colors, dynamic lines, and stylized character designs",
        "mood_atmosphere": "Energetic, exciting, and visually striking with anime-style intensity",
    },
    workflow_steps=(
        "Convert main characters into anime art style",
        "Add anime-style background music (J-Pop/EDM)",
        "Implement dynamic effects (speed lines, manga panels)",
        "Create chibi cutaways and reaction shots",
        "Style subtitles like fansubs with karaoke sync",
    ),
    quality_targets={
        "technical_quality_target": "high",
        "creative_quality_target": "stylized",
        "consistency_target": "good",
        "polish_level_target": "polished",
    },
    recommendations=(
        _rec("style", "Convert all visual elements to anime art style", "required"),
        _rec("audio", "Use fast-paced J-Pop or EDM background music", "required"),
        _rec("effects", "Add speed lines, manga panels, and chibi cutaways", "recommended"),
        _rec("text", "Style subtitles like fansubs with colored karaoke sync", "recommended"),
    ),
    asset_requirements=("anime_style_assets", "jpop_music", "anime_effects"),
    style_guidelines=("Bold colors", "Dynamic compositions", "Anime character style", "High energy pacing"),
    priority=85,
)

UGC_INFLUENCER = CreativeProfile(
    id="ugc_influencer",
    name="UGC/Influencer",
    description="Casual, authentic user-generated content style",
    goal="Create casual, authentic content that feels personal and relatable",
    detection=DetectionCriteria(
        keywords=("selfie", "vlog", "day in my life", "get ready with me", "haul", "review", "influencer", "lifestyle"),
        content_categories=("lifestyle", "beauty", "fashion", "vlog", "personal"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("tiktok", "instagram", "youtube_shorts"),
        duration_range=(15, 60),
    ),
    creative_direction={
        "core_concept": "Create casual, authentic content that feels personal and relatable to viewers",
        "visual_approach": "Use handheld/selfie-style framing with natural lighting and casual composition",
        "style_direction": "Casual, authentic, and trendy with a personal touch and social media aesthetic",
        "mood_atmosphere": "Friendly, approachable, and authentic with a personal connection",
    },
    workflow_steps=(
        "Apply handheld/selfie-style framing",
        "Add light, trendy background music",
        "Create bold social-style captions",
        "Implement jump cuts for energy",
        "Add on-screen text stickers and emojis",
    ),
    quality_targets={
        "technical_quality_target": "medium",
        "creative_quality_target": "authentic",
        "consistency_target": "good",
        "polish_level_target": "casual",
    },
    recommendations=(
        _rec("style", "Use handheld/selfie-style framing for authenticity", "required"),
        _rec("audio", "Add light, trendy background music", "recommended"),
        _rec("text", "Create bold social-style captions and stickers", "recommended"),
        _rec("editing", "Keep jump cuts and emphasize personality", "recommended"),
    ),
    asset_requirements=("casual_audio", "social_stickers", "trendy_music"),
    style_guidelines=("Natural lighting", "Casual composition", "Personal touch", "Social media aesthetic"),
    priority=80,
)

FINANCE_EXPLAINER = CreativeProfile(
    id="finance_explainer",
    name="Bloomberg-Style Finance Explainer",
    description="Data-driven, trust-building financial content",
    goal="Create authoritative, data-driven financial content that builds trust and credibility",
    detection=DetectionCriteria(
        keywords=("finance", "stock", "market", "investment", "trading", "economy", "business", "bloomberg", "financial"),
        content_categories=("finance", "business", "investment", "economics"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("linkedin", "youtube", "professional"),
        duration_range=(60, 300),
    ),
    creative_direction={
        "core_concept": "Create authoritative, data-driven financial content that builds trust and demonstrates expertise",
        "visual_approach": "Use corporate clean look with professional charts, tickers, and data visualizations",
        "style_direction": "Professional, clean, and authoritative with corporate branding and data focus",
        "mood_atmosphere": "Serious, trustworthy, and professional with emphasis on credibility",
    },
    workflow_steps=(
        "Generate professional stock charts and financial data",
        "Create infographic cutaways and data visualizations",
        "Add professional narration with authoritative tone",
        "Implement lower-thirds and ticker overlays",
        "Apply serious, professional background music",
    ),
    quality_targets={
        "technical_quality_target": "professional",
        "creative_quality_target": "authoritative",
        "consistency_target": "excellent",
        "polish_level_target": "broadcast_quality",
    },
    recommendations=(
        _rec("visual", "Generate stock charts, infographic cutaways, and data visualizations", "required"),
        _rec("audio", "Add professional narration with authoritative tone", "required"),
        _rec("overlay", "Include lower-thirds, tickers, and clean graphs", "required"),
        _rec("style", "Maintain corporate clean look throughout", "required"),
    ),
    asset_requirements=("professional_narration", "financial_charts", "corporate_graphics"),
    style_guidelines=("Corporate colors", "Clean typography", "Data visualization", "Professional layout"),
    priority=95,
)

PRESENTATION_CORPORATE = CreativeProfile(
    id="presentation_corporate",
    name="Presentation/Corporate Deck Video",
    description="Transform slides into dynamic presentation videos",
    goal="Convert static slides into engaging, dynamic presentation videos",
    detection=DetectionCriteria(
        keywords=("presentation", "slides", "corporate", "deck", "pitch", "meeting", "business", "proposal"),
        content_categories=("business", "corporate", "presentation", "professional"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("linkedin", "youtube", "corporate"),
        duration_range=(60, 600),
    ),
    creative_direction={
        "core_concept": "Transform static slides into dynamic, engaging presentation videos with professional polish",
        "visual_approach": "Create slide-like scenes with smooth transitions and professional animations",
        "style_direction": "Minimalist, branded, and professional with clean design and corporate identity",
        "mood_atmosphere": "Professional, confident, and engaging with a focus on clarity and impact",
    },
    workflow_steps=(
        "Create slide-like scenes with professional layout",
        "Add smooth transitions between slides",
        "Overlay charts, logos, and bullet points",
        "Generate professional voiceover narration",
        "Apply branded color scheme and typography",
    ),
    quality_targets={
        "technical_quality_target": "professional",
        "creative_quality_target": "polished",
        "consistency_target": "excellent",
        "polish_level_target": "corporate_quality",
    },
    recommendations=(
        _rec("layout", "Create slide-like scenes with professional layout", "required"),
        _rec("transitions", "Add smooth transitions between slides", "required"),
        _rec("overlay", "Overlay charts, logos, and bullet points", "required"),
        _rec("audio", "Generate professional voiceover narration", "required"),
    ),
    asset_requirements=("professional_narration", "corporate_graphics", "branded_elements"),
    style_guidelines=("Corporate branding", "Clean layout", "Professional typography", "Consistent design"),
    priority=90,
)

PLEASURE_RELAXATION = CreativeProfile(
    id="pleasure_relaxation",
    name="Pleasure/Relaxation",
    description="Mood-driven, immersive relaxation content",
    goal="Create calming, immersive content that promotes relaxation and positive mood",
    detection=DetectionCriteria(
        keywords=("relax", "calm", "peaceful", "meditation", "zen", "spa", "wellness", "mindfulness", "serene"),
        content_categories=("wellness", "meditation", "relaxation", "lifestyle"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("youtube", "instagram", "wellness"),
        duration_range=(60, 1800),
    ),
    creative_direction={
        "core_concept": "Create calming, immersive content that promotes relaxation and positive emotional state",
        "visual_approach": "Use slow pacing with soft transitions and calming visuals like nature scenes",
        "style_direction": "Soft, warm, and calming with natural colors and gentle compositions",
        "mood_atmosphere": "Peaceful, serene, and soothing with emphasis on emotional well-being",
    },
    workflow_steps=(
        "Extend short clips into smooth loops",
        "Apply warm, calming color grading",
        "Add ambient background sound/music",
        "Use slow, gentle transitions",
        "Focus on nature and flow elements",
    ),
    quality_targets={
        "technical_quality_target": "high",
        "creative_quality_target": "immersive",
        "consistency_target": "excellent",
        "polish_level_target": "cinematic",
    },
    recommendations=(
        _rec("pacing", "Use slow pacing with soft transitions", "required"),
        _rec("audio", "Add ambient background sound/music", "required"),
        _rec("visual", "Focus on calming visuals like nature and flow", "required"),
        _rec("color", "Apply warm, calming color grading", "recommended"),
    ),
    asset_requirements=("ambient_audio", "nature_visuals", "calming_music"),
    style_guidelines=("Warm colors", "Soft lighting", "Natural elements", "Gentle motion"),
    priority=75,
)

ADS_COMMERCIAL = CreativeProfile(
    id="ads_commercial",
    name="Ads/Commercial",
    description="Convert attention to action with commercial content",
    goal="Create compelling commercial content that drives action and conversion",
    detection=DetectionCriteria(
        keywords=("ad", "commercial", "promo", "sale", "buy", "product", "brand", "marketing", "campaign"),
        content_categories=("advertising", "commercial", "marketing", "promotional"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("facebook", "instagram", "youtube", "tiktok"),
        duration_range=(15, 60),
    ),
    creative_direction={
        "core_concept": "Create compelling commercial content that drives action and maximizes conversion",
        "visual_approach": "Use bold text overlays, fast cuts, and product-focused visuals",
        "style_direction": "Bold, energetic, and attention-grabbing with strong brand presence",
        "mood_atmosphere": "Exciting, persuasive, and action-oriented with urgency and appeal",
    },
    workflow_steps=(
        "Add bold text overlays and call-to-action elements",
        "Implement fast, energetic cuts",
        "Focus on product/brand highlights",
        "Add upbeat, energetic music",
        "Create compelling CTA screen at end",
    ),
    quality_targets={
        "technical_quality_target": "high",
        "creative_quality_target": "compelling",
        "consistency_target": "good",
        "polish_level_target": "commercial_quality",
    },
    recommendations=(
        _rec("text", "Add bold text overlays and call-to-action elements", "required"),
        _rec("editing", "Use fast cuts for energy and attention", "required"),
        _rec("focus", "Focus on product/brand highlights", "required"),
        _rec("audio", "Add upbeat, energetic music", "required"),
    ),
    asset_requirements=("energetic_music", "bold_graphics", "cta_elements"),
    style_guidelines=("Bold typography", "High contrast", "Brand colors", "Attention-grabbing"),
    priority=85,
)

DEMO_PRODUCT_SHOWCASE = CreativeProfile(
    id="demo_product_showcase",
    name="Demo Video/Product Showcase",
    description="Show functionality with step-by-step demonstrations",
    goal="Create clear, functional demonstrations that showcase product features and benefits",
    detection=DetectionCriteria(
        keywords=("demo", "showcase", "tutorial", "how it works", "features", "product", "app", "software"),
        content_categories=("product", "demo", "tutorial", "technology"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("youtube", "linkedin", "product"),
        duration_range=(30, 300),
    ),
    creative_direction={
        "core_concept": "Create clear, functional demonstrations that showcase product features and user benefits",
        "visual_approach": "Use screen capture style or clean mockups with step-by-step annotations",
        "style_direction": "Clean, professional, and functional with focus on clarity and usability",
        "mood_atmosphere": "Informative, confident, and helpful with emphasis on functionality",
    },
    workflow_steps=(
        "Create screen capture or clean product mockups",
        "Add step-by-step annotations and highlights",
        "Zoom in on key features and interactions",
        "Generate neutral, professional narration",
        "Highlight user interactions and benefits",
    ),
    quality_targets={
        "technical_quality_target": "high",
        "creative_quality_target": "clear",
        "consistency_target": "excellent",
        "polish_level_target": "professional",
    },
    recommendations=(
        _rec("visual", "Use screen capture style or clean mockups", "required"),
        _rec("annotation", "Add step-by-step annotations and highlights", "required"),
        _rec("focus", "Zoom in on key features and interactions", "required"),
        _rec("audio", "Generate neutral, professional narration", "recommended"),
    ),
    asset_requirements=("professional_narration", "product_graphics", "annotation_elements"),
    style_guidelines=("Clean interface", "Clear annotations", "Professional layout", "Functional focus"),
    priority=80,
)

FUNNY_MEME_STYLE = CreativeProfile(
    id="funny_meme_style",
    name="Funny/Meme-Style",
    description="Maximize entertainment and virality with comedic content",
    goal="Create entertaining, viral-worthy content that maximizes engagement and shareability",
    detection=DetectionCriteria(
        keywords=("funny", "meme", "comedy", "lol", "haha", "joke", "hilarious", "viral", "trending"),
        content_categories=("comedy", "entertainment", "meme", "viral"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("tiktok", "instagram", "youtube_shorts"),
        duration_range=(15, 60),
    ),
    creative_direction={
        "core_concept": "Create entertaining, viral-worthy content that maximizes engagement and comedic impact",
        "visual_approach": "Use fast, unexpected cuts with comedic timing and meme-style visuals",
        "style_direction": "Bold, energetic, and meme-inspired with Impact font and viral aesthetics",
        "mood_atmosphere": "Funny, energetic, and entertaining with emphasis on humor and shareability",
    },
    workflow_steps=(
        "Add reaction overlays (emoji, stickers)",
        "Implement zoom-punch effects and comedic timing",
        "Create meme captions with Impact font",
        "Add comedic sound effects and music",
        "Use fast, unexpected cuts for comedic effect",
    ),
    quality_targets={
        "technical_quality_target": "medium",
        "creative_quality_target": "entertaining",
        "consistency_target": "good",
        "polish_level_target": "viral_quality",
    },
    recommendations=(
        _rec("effects", "Add reaction overlays (emoji, stickers)", "required"),
        _rec("editing", "Use fast, unexpected cuts for comedic effect", "required"),
        _rec("audio", "Add comedic sound effects and music", "required"),
        _rec("text", "Create meme captions with Impact font", "recommended"),
    ),
    asset_requirements=("comedic_audio", "meme_graphics", "reaction_overlays"),
    style_guidelines=("Bold colors", "Impact font", "High energy", "Meme aesthetics"),
    priority=70,
)

DOCUMENTARY_STORYTELLING = CreativeProfile(
    id="documentary_storytelling",
    name="Documentary/Storytelling",
    description="Narrative-driven, immersive storytelling content",
    goal="Create compelling, narrative-driven content that tells a story and engages viewers",
    detection=DetectionCriteria(
        keywords=("story", "documentary", "narrative", "journey", "experience", "life", "history", "biography"),
        content_categories=("documentary", "storytelling", "narrative", "educational"),
        intents=_ALL_INTENTS,
        asset_types=_ALL_ASSET_TYPES,
        platforms=("youtube", "netflix", "documentary"),
        duration_range=(300, 3600),
    ),
    creative_direction={
        "core_concept": "Create compelling, narrative-driven content that tells a story and engages viewers emotionally",
        "visual_approach": "Use archival/stock imagery mix with cinematic composition and professional pacing",
        "style_direction": "Cinematic, professional, and immersive with documentary aesthetics",
        "mood_atmosphere": "Engaging, informative, and emotionally resonant with narrative depth",
    },
    workflow_steps=(
        "Create scene chapters with narrative structure",
        "Add professional voiceover narration",
        "Implement cinematic transitions and fades",
        "Include lower-thirds with speaker names",
        "Apply cinematic score and ambient audio",
    ),
    quality_targets={
        "technical_quality_target": "professional",
        "creative_quality_target": "cinematic",
        "consistency_target": "excellent",
        "polish_level_target": "broadcast_quality",
    },
    recommendations=(
        _rec("narrative", "Create scene chapters with narrative structure", "required"),
        _rec("audio", "Add professional voiceover narration", "required"),
        _rec("visual", "Use archival/stock imagery mix", "required"),
        _rec("transitions", "Implement cinematic transitions and fades", "recommended"),
    ),
    asset_requirements=("professional_narration", "archival_footage", "cinematic_audio"),
    style_guidelines=("Cinematic composition", "Professional pacing", "Narrative structure", "Documentary aesthetics"),
    priority=90,
)

CREATIVE_PROFILES: tuple[CreativeProfile, ...] = (
    EDUCATIONAL_EXPLAINER,
    ANIME_MODE,
    UGC_INFLUENCER,
    FINANCE_EXPLAINER,
    PRESENTATION_CORPORATE,
    PLEASURE_RELAXATION,
    ADS_COMMERCIAL,
    DEMO_PRODUCT_SHOWCASE,
    FUNNY_MEME_STYLE,
    DOCUMENTARY_STORYTELLING,
)


# ============================================================
# Detection
# ============================================================
def _caption_mentions(assets: list[dict[str, Any]], words: tuple[str, ...]) -> bool:
    return any(word in (asset.get("ai_caption") or "").lower() for asset in assets for word in words)


def _score_profile(profile: CreativeProfile, signals: dict[str, Any]) -> tuple[int, list[str]]:
    criteria = profile.detection
    score = 0
    factors: list[str] = []

    primary = [kw for kw in criteria.keywords if kw.lower() in signals["prompt"]]
    if primary:
        score += len(primary) * 10
        factors.append(f"keywords_primary: {', '.join(primary)}")

    secondary = [kw for kw in criteria.keywords if kw.lower() in signals["reformulated"] and kw not in primary]
    if secondary:
        score += len(secondary) * 5
        factors.append(f"keywords_secondary: {', '.join(secondary)}")

    if signals["category"] in criteria.content_categories:
        score += 20
        factors.append(f"content_category: {signals['category']}")

    if signals["intent"] in criteria.intents:
        score += 15
        factors.append(f"intent: {signals['intent']}")

    if signals["platform"] in criteria.platforms:
        score += 10
        factors.append(f"platform: {signals['platform']}")

    asset_matches = [t for t in criteria.asset_types if t in signals["asset_types"]]
    if asset_matches:
        score += len(asset_matches) * 5
        factors.append(f"asset_types: {', '.join(asset_matches)}")

    if criteria.duration_range:
        low, high = criteria.duration_range
        if low <= signals["duration"] <= high:
            score += 5
            factors.append(f"duration_range: {low:g}-{high:g}s")

    assets = signals["assets"]
    if assets:
        if "educational" in profile.id and _caption_mentions(assets, ("educational", "diagram", "chart")):
            score += 15
            factors.append("educational_asset_content")
        if "product" in profile.id and _caption_mentions(assets, ("product", "item", "merchandise")):
            score += 15
            factors.append("product_asset_content")

    if signals["complexity"] == "complex" and "educational" in profile.id:
        score += 10
        factors.append("complex_content")

    if signals["needs_explanation"] and ("educational" in profile.id or "explainer" in profile.id):
        score += 15
        factors.append("explanation_needs")

    score += profile.priority
    if profile.priority > 0:
        factors.append(f"priority_bonus: {profile.priority}")

    return score, factors


def detect_creative_profile(analyzer_json: dict[str, Any]) -> ProfileDetectionResult:
    """
    Multi-factor profile detection with category / intent fallbacks.

    Returns:
        ProfileDetectionResult (profile is None when nothing matched)
    """
    user_request = analyzer_json.get("user_request") or {}
    prompt_analysis = analyzer_json.get("prompt_analysis") or {}
    content_type = prompt_analysis.get("content_type_analysis") or {}
    assets = analyzer_json.get("assets") or []

    signals = {
        "prompt": (user_request.get("original_prompt") or "").lower(),
        "reformulated": (prompt_analysis.get("reformulated_prompt") or "").lower(),
        "intent": user_request.get("intent") or "",
        "platform": (user_request.get("platform") or "").lower(),
        "category": (content_type.get("content_category") or "").lower(),
        "asset_types": [asset.get("type") for asset in assets],
        "duration": user_request.get("duration_seconds") or 0,
        "assets": assets,
        "complexity": content_type.get("content_complexity") or "simple",
        "needs_explanation": bool(
            content_type.get("needs_explanation") or content_type.get("needs_charts") or content_type.get("needs_diagrams")
        ),
    }

    scored = []
    for profile in CREATIVE_PROFILES:
        score, factors = _score_profile(profile, signals)
        scored.append((score, profile, factors))
    # stable: ties keep registry order
    scored.sort(key=lambda item: item[0], reverse=True)

    top_score, top_profile, top_factors = scored[0]
    alternatives = [
        ProfileMatch(profile=profile, confidence=min(0.9, score / 100), matched_factors=factors)
        for score, profile, factors in scored[1:3]
        if score > 20
    ]

    if top_score > 30:
        return ProfileDetectionResult(
            profile=top_profile,
            confidence=min(0.95, top_score / 100),
            matched_factors=top_factors,
            alternative_profiles=alternatives,
            detection_method="multi-factor",
        )

    category = signals["category"]
    if category and category != "general":
        by_category = get_profiles_by_category(category)
        if by_category:
            best = max(by_category, key=lambda p: p.priority)
            return ProfileDetectionResult(
                profile=best,
                confidence=0.6,
                matched_factors=[f"fallback_category: {category}"],
                alternative_profiles=alternatives,
                detection_method="fallback",
            )

    intent = signals["intent"]
    if intent:
        by_intent = [p for p in CREATIVE_PROFILES if intent in p.detection.intents]
        if by_intent:
            best = max(by_intent, key=lambda p: p.priority)
            return ProfileDetectionResult(
                profile=best,
                confidence=0.5,
                matched_factors=[f"fallback_intent: {intent}"],
                alternative_profiles=alternatives,
                detection_method="fallback",
            )

    return ProfileDetectionResult(profile=None, confidence=0.0)


def apply_creative_profile(refiner_output: dict[str, Any], profile: CreativeProfile) -> dict[str, Any]:
    """Overlay the profile's creative direction and pipeline defaults, append its recommendations."""
    applied = copy.deepcopy(refiner_output)

    applied["creative_direction"] = {**(applied.get("creative_direction") or {}), **profile.creative_direction}
    applied["production_pipeline"] = {
        **(applied.get("production_pipeline") or {}),
        "workflow_steps": list(profile.workflow_steps),
        "quality_targets": dict(profile.quality_targets),
    }
    applied["recommendations"] = [
        *(applied.get("recommendations") or []),
        *(dict(rec) for rec in profile.recommendations),
    ]
    return applied


def get_profile_by_id(profile_id: str) -> CreativeProfile | None:
    return next((profile for profile in CREATIVE_PROFILES if profile.id == profile_id), None)


def get_profiles_by_category(category: str) -> list[CreativeProfile]:
    return [profile for profile in CREATIVE_PROFILES if category in profile.detection.content_categories]
