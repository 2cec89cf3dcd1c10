from __future__ import annotations

from pressroom.schemas.enums import AssetKind

ASSETS_BY_ANNOUNCEMENT: dict[str, list[AssetKind]] = {
    "Product Launch": [
        AssetKind.PRESS_RELEASE,
        AssetKind.MEDIA_PITCH,
        AssetKind.SOCIAL_POST,
        AssetKind.BLOG_POST,
        AssetKind.FAQ_DOCUMENT,
    ],
    "Funding Round": [AssetKind.PRESS_RELEASE, AssetKind.MEDIA_PITCH, AssetKind.SOCIAL_POST],
    "Partnership": [AssetKind.PRESS_RELEASE, AssetKind.MEDIA_PITCH, AssetKind.SOCIAL_POST],
    "Company Milestone": [AssetKind.PRESS_RELEASE, AssetKind.SOCIAL_POST, AssetKind.BLOG_POST],
    "Executive Hire": [AssetKind.PRESS_RELEASE, AssetKind.MEDIA_PITCH, AssetKind.SOCIAL_POST],
    "Industry Award": [AssetKind.PRESS_RELEASE, AssetKind.SOCIAL_POST, AssetKind.BLOG_POST],
}

DEFAULT_ANNOUNCEMENT = "Product Launch"

ASSET_DESCRIPTIONS: dict[AssetKind, str] = {
    AssetKind.PRESS_RELEASE: "Official announcement document for media distribution",
    AssetKind.MEDIA_PITCH: "Personalized outreach to journalists and publications",
    AssetKind.SOCIAL_POST: "Content for social media platforms",
    AssetKind.BLOG_POST: "Detailed article for the company website or blog",
    AssetKind.FAQ_DOCUMENT: "Anticipated questions and prepared answers",
}
