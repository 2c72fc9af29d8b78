# src/schemakit/constants.py
"""Centralized constants for schema mapping and validation.

This module holds the static tables shared by the mapper, validator and
conflict detector. For user-configurable values, see config.py and
MapperConfig.
"""

# =============================================================================
# JSON-LD Basics
# =============================================================================

SCHEMA_CONTEXT = "https://schema.org"

# Type emitted when a schema key has no known mapping
FALLBACK_SCHEMA_TYPE = "Thing"

# Schema key -> schema.org @type
SCHEMA_KEY_TYPES = {
    'article': 'Article',
    'blog_posting': 'BlogPosting',
    'news_article': 'NewsArticle',
    'product': 'Product',
    'event': 'Event',
    'organization': 'Organization',
    'website': 'WebSite',
    'local_business': 'LocalBusiness',
    'corporation': 'Corporation',
    'faq': 'FAQPage',
    'howto': 'HowTo',
    'job_posting': 'JobPosting',
    'course': 'Course',
    'review': 'Review',
    'recipe': 'Recipe',
    'medical_condition': 'MedicalCondition',
}

ARTICLE_KEYS = ('article', 'blog_posting', 'news_article')

# Keys rendered per post and site-wide by the page integration. Posts also get
# the one article key chosen by their selected_schema_type meta.
POST_SCHEMA_KEYS = ('faq', 'howto', 'author')
GLOBAL_SCHEMA_KEYS = ('organization', 'local_business', 'website', 'corporation', 'author')

AUTHOR_KEY = 'author'
AUTHOR_TYPES = ('Person', 'Organization')
DEFAULT_AUTHOR_TYPE = 'Person'

GLOBAL_POST_TYPE = 'global'


# =============================================================================
# Field Groups
# =============================================================================

ADDRESS_SUB_FIELDS = (
    'streetAddress',
    'addressLocality',
    'addressRegion',
    'postalCode',
    'addressCountry',
)

SOCIAL_FIELDS = (
    'facebook_url',
    'twitter_url',
    'instagram_url',
    'youtube_url',
    'linkedin_url',
)

# Platforms whose "<platform>_url" options make up the social profile list
SOCIAL_PLATFORMS = ('facebook', 'twitter', 'instagram', 'linkedin', 'youtube')

# Fields assembled outside the main field loop
SEPARATELY_HANDLED_FIELDS = ('address', 'image', 'logo')

PERSON_ONLY_FIELDS = (
    'givenName',
    'familyName',
    'additionalName',
    'honorificPrefix',
    'honorificSuffix',
    'jobTitle',
    'worksFor',
)

ORGANIZATION_ONLY_FIELDS = ('contactPoint',)

# Theme mods checked, in order, when looking for a site logo
THEME_LOGO_MODS = ('logo', 'site_logo', 'header_logo', 'main_logo')


# =============================================================================
# Source Specifiers
# =============================================================================

FEATURED_IMAGE_TOKEN = 'featured_image'
SITE_LOGO_TOKEN = 'site_logo'
SOCIAL_PROFILES_TOKEN = 'social_profiles'

# Post fields accepted without a "post:" prefix
BARE_POST_FIELDS = (
    'post_title',
    'post_excerpt',
    'post_content',
    'post_date',
    'post_modified',
    'featured_image',
    'author_name',
    'author_url',
)

# Prefix for plugin-level global options resolved by "site:<key>"
GLOBAL_OPTION_PREFIX = 'srk_global_'

# Post meta holding per-post FAQ items ([{question, answer}, ...])
FAQ_ITEMS_META_KEY = 'srk_faq_items'
ARTICLE_TYPE_META_KEY = 'selected_schema_type'
DEFAULT_ARTICLE_KEY = 'article'


# =============================================================================
# Validation Tables
# =============================================================================

REQUIRED_FIELDS = {
    'article': ['headline', 'author', 'publisher'],
    'blog_posting': ['headline', 'author', 'publisher'],
    'news_article': ['headline', 'author', 'publisher'],
    'product': ['name', 'offers'],
    'event': ['name', 'startDate', 'location'],
    'organization': ['name'],
    'person': ['name'],
    'local_business': ['name', 'address'],
    'corporation': ['name'],
    'website': ['name', 'url'],
    'faq': ['mainEntity'],
    'job_posting': ['title', 'description', 'datePosted', 'hiringOrganization', 'jobLocation'],
    'course': ['name', 'provider'],
    'review': ['itemReviewed', 'reviewRating', 'author'],
    'recipe': ['name'],
    'medical_condition': ['name'],
}

RECOMMENDED_FIELDS = {
    'article': ['image', 'datePublished', 'dateModified'],
    'blog_posting': ['image', 'datePublished', 'dateModified'],
    'news_article': ['image', 'datePublished', 'dateModified'],
    'product': ['description', 'image', 'brand', 'sku'],
    'event': ['description', 'endDate', 'organizer', 'performer', 'offers', 'eventStatus', 'image'],
    'organization': ['url', 'logo', 'sameAs'],
    'local_business': ['telephone', 'openingHours', 'priceRange'],
    'website': ['description', 'potentialAction'],
    'faq': [],
    'job_posting': ['validThrough', 'employmentType', 'baseSalary'],
    'course': ['description', 'provider'],
    'review': ['reviewBody', 'datePublished'],
    'recipe': ['description', 'image', 'recipeIngredient', 'recipeInstructions'],
}

FIELD_TYPES = {
    'url': ('url', 'image', 'logo', 'sameAs', 'author', 'publisher'),
    'date': ('datePublished', 'dateModified', 'startDate', 'endDate', 'datePosted', 'validThrough'),
    'email': ('email',),
    'phone': ('telephone',),
    'number': ('ratingValue', 'reviewCount', 'bestRating', 'worstRating', 'price', 'baseSalary'),
    'text': ('name', 'headline', 'description', 'title', 'reviewBody'),
}

RATING_FIELDS = ('ratingValue', 'bestRating', 'worstRating')

FIELD_LABELS = {
    'name': 'Name',
    'headline': 'Headline',
    'description': 'Description',
    'author': 'Author',
    'publisher': 'Publisher',
    'image': 'Image',
    'datePublished': 'Date Published',
    'dateModified': 'Date Modified',
    'offers': 'Offers',
    'startDate': 'Start Date',
    'endDate': 'End Date',
    'address': 'Address',
    'url': 'URL',
    'mainEntity': 'Main Entity',
    'title': 'Title',
    'datePosted': 'Date Posted',
    'validThrough': 'Valid Through',
    'provider': 'Provider',
    'itemReviewed': 'Item Reviewed',
    'reviewRating': 'Review Rating',
    'ratingValue': 'Rating Value',
    'reviewCount': 'Review Count',
    'bestRating': 'Best Rating',
    'worstRating': 'Worst Rating',
}

FIELD_SUGGESTIONS = {
    'name': 'Enable this field and map it to your post title or a custom field containing the name.',
    'headline': 'Enable this field and map it to your post title. This is the main headline of your article.',
    'author': 'Enable this field and map it to the post author (post:post_author) or a custom field.',
    'publisher': 'Enable this field and map it to your site name (site:site_name) or organization.',
    'offers': 'Product schemas need pricing information. Map the price field to an Offer.',
    'startDate': 'Enable this field and map it to a date field, such as post:post_date or a custom date field.',
    'address': 'Enable this field and provide your business address using the street, city and postal code sub-fields.',
    'url': 'Enable this field and map it to the post URL or a custom URL field.',
    'mainEntity': 'Add at least one FAQ item with both a question and an answer.',
    'ratingValue': 'Enable this field and provide a numeric rating value (typically between 0 and 5).',
    'reviewCount': 'Enable this field and provide the total number of reviews as a whole number.',
    'title': 'Enable this field and map it to your post title or job title field.',
    'datePosted': 'Enable this field and map it to the post date or a custom date field for when the job was posted.',
    'validThrough': 'Enable this field and provide the date when the job posting expires.',
    'provider': 'Enable this field and provide the name of the course provider or educational institution.',
}

DEFAULT_FIELD_SUGGESTION = 'Please enable this field and provide a valid value.'

FIELD_EXAMPLES = {
    'name': 'Example Product Name',
    'headline': 'Example Article Headline',
    'author': 'John Doe',
    'publisher': 'Your Site Name',
    'offers': '29.99',
    'startDate': '2024-01-01',
    'address': '123 Main St, City, State 12345',
    'url': 'https://example.com/page',
    'ratingValue': '4.5',
    'reviewCount': '150',
    'title': 'Software Engineer',
    'datePosted': '2024-01-01',
    'validThrough': '2024-12-31',
    'provider': 'Example University',
    'email': 'contact@example.com',
    'telephone': '+1-555-123-4567',
}


# =============================================================================
# Conflict Detection
# =============================================================================

CONFLICT_GROUPS = {
    # Only one article type per page
    'article_types': ('article', 'blogposting', 'newsarticle'),
    # LocalBusiness and Corporation extend Organization
    'organization_types': ('organization', 'localbusiness', 'corporation'),
    # Review should reference Product rather than sit beside it
    'product_review': ('product', 'review'),
}

# Substring that marks a source as an author schema
AUTHOR_SOURCE_MARKER = 'author'

CONFLICT_TRANSIENT_PREFIX = 'srk_schema_conflicts_'


# =============================================================================
# Geo Bounds
# =============================================================================

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


# =============================================================================
# External Tools
# =============================================================================

RICH_RESULTS_TEST_URL = "https://search.google.com/test/rich-results?url="
