"""
Field source resolution.

Turns a meta-map source specifier into a literal value using the current
post and site:

- post:<field>      post fields, falling back to post meta
- meta:<key>        post meta
- user:<key>        meta of the post author
- tax:<taxonomy>    term names (also accepted as [tax:<taxonomy>])
- site:<key>        site info or srk_global_<key> options
- custom:<value>    literal value
- featured_image    post thumbnail URL
- site_logo         site logo URL
- social_profiles   list of configured social profile URLs

Anything else is looked up as post meta and, failing that, passed through
as a literal.
"""

import logging
import re
from typing import Any, List, Optional, Union

from schemakit.constants import (
    BARE_POST_FIELDS,
    FEATURED_IMAGE_TOKEN,
    GLOBAL_OPTION_PREFIX,
    SITE_LOGO_TOKEN,
    SOCIAL_PLATFORMS,
    SOCIAL_PROFILES_TOKEN,
    THEME_LOGO_MODS,
)
from schemakit.models import PostContext, SiteContext
from schemakit.sanitize import esc_url_raw, is_blank, is_valid_url, strip_tags

logger = logging.getLogger(__name__)

FieldValue = Union[str, List[str]]

_BRACKET_TAX_RE = re.compile(r'^\[tax:(.+)\]$')


class FieldResolver:
    """Resolve source specifiers against a site and an optional post."""

    def __init__(self, site: SiteContext, post: Optional[PostContext] = None):
        self.site = site
        self.post = post

    def resolve(self, specifier: Any) -> FieldValue:
        """Resolve a specifier to a string or list of strings ("" when unresolved)."""
        if is_blank(specifier):
            return ''
        spec = str(specifier)

        if spec == FEATURED_IMAGE_TOKEN:
            return self.featured_image_url()
        if spec == SITE_LOGO_TOKEN:
            return self.site_logo()
        if spec == SOCIAL_PROFILES_TOKEN:
            return self.social_profiles()

        bracket = _BRACKET_TAX_RE.match(spec)
        if bracket:
            return self._resolve_taxonomy(bracket.group(1))

        prefix, sep, key = spec.partition(':')
        if sep:
            if prefix == 'custom':
                return key
            if prefix == 'post':
                return self._resolve_post_field(key)
            if prefix == 'meta':
                return self._post_meta(key)
            if prefix == 'user':
                return self._resolve_user_field(key)
            if prefix == 'tax':
                return self._resolve_taxonomy(key)
            if prefix == 'site':
                return self._resolve_site_field(key)

        if spec in BARE_POST_FIELDS:
            return self._resolve_post_field(spec)

        # Unprefixed values: post meta first, then literal passthrough
        meta_value = self._post_meta(spec)
        if not is_blank(meta_value):
            return meta_value
        return spec

    # ------------------------------------------------------------------
    # Post fields
    # ------------------------------------------------------------------

    def _resolve_post_field(self, name: str) -> FieldValue:
        post = self.post
        if post is None:
            return ''

        if name == 'post_title':
            return post.title
        if name == 'post_excerpt':
            return post.excerpt or _trim_words(strip_tags(post.content), 55)
        if name == 'post_content':
            return strip_tags(post.content).strip()
        if name == 'post_date':
            return post.date.isoformat() if post.date else ''
        if name == 'post_modified':
            return post.modified.isoformat() if post.modified else ''
        if name == 'featured_image':
            return self.featured_image_url()
        if name in ('post_author', 'author_name'):
            return post.author.display_name if post.author else ''
        if name == 'author_url':
            return post.author.url if post.author else ''
        if name == 'post_author_id':
            return str(post.author.id) if post.author else ''
        if name in ('post_url', 'permalink'):
            return post.permalink
        return self._post_meta(name)

    def _post_meta(self, key: str) -> FieldValue:
        if self.post is None:
            return ''
        return _as_field_value(self.post.meta.get(key, ''))

    def _resolve_user_field(self, key: str) -> FieldValue:
        if self.post is None or self.post.author is None:
            return ''
        author = self.post.author
        if key == 'display_name':
            return author.display_name
        if key == 'user_url':
            return _as_field_value(author.meta.get('user_url', author.url))
        if key == 'ID':
            return str(author.id)
        return _as_field_value(author.meta.get(key, ''))

    def _resolve_taxonomy(self, taxonomy: str) -> FieldValue:
        if self.post is None or taxonomy not in self.site.taxonomies:
            return ''
        terms = [t for t in self.post.terms.get(taxonomy, []) if not is_blank(t)]
        return terms if terms else ''

    def featured_image_url(self) -> str:
        if self.post is None or self.post.featured_image is None:
            return ''
        return self.post.featured_image.url

    # ------------------------------------------------------------------
    # Site fields
    # ------------------------------------------------------------------

    def _resolve_site_field(self, key: str) -> FieldValue:
        site_values = {
            'site_name': self.site.name,
            'site_description': self.site.description,
            'site_url': self.site.url,
            'admin_email': self.site.admin_email,
        }
        if key in site_values:
            return site_values[key]
        if key == 'logo_url':
            return self.site_logo()
        return _as_field_value(self.site.get_option(f"{GLOBAL_OPTION_PREFIX}{key}", ''))

    def site_logo(self) -> str:
        """Find the site logo URL.

        Checks the customizer logo, the site icon, common theme logo mods and
        finally the site_logo option. Returns "" when none is set.
        """
        site = self.site
        if site.custom_logo and site.custom_logo.url:
            return site.custom_logo.url
        if site.site_icon and site.site_icon.url:
            return site.site_icon.url

        for mod in THEME_LOGO_MODS:
            url = self._image_setting_url(site.theme_mods.get(mod))
            if url:
                return url

        return self._image_setting_url(site.get_option('site_logo', None))

    def site_logo_image(self):
        """The ImageRef behind site_logo(), when it is a known attachment."""
        site = self.site
        if site.custom_logo and site.custom_logo.url:
            return site.custom_logo
        if site.site_icon and site.site_icon.url:
            return site.site_icon
        url = self.site_logo()
        return site.find_attachment_by_url(url) if url else None

    def _image_setting_url(self, value: Any) -> str:
        """A theme mod or option may hold a URL or an attachment id."""
        if is_blank(value):
            return ''
        if is_valid_url(str(value)):
            return str(value)
        if str(value).isdigit():
            image = self.site.get_attachment(value)
            if image and image.url:
                return image.url
        return ''

    def social_profiles(self) -> List[str]:
        profiles = []
        for platform in SOCIAL_PLATFORMS:
            url = self.site.get_option(f"{platform}_url", '')
            if url:
                profiles.append(esc_url_raw(url))
        return profiles


def _as_field_value(value: Any) -> FieldValue:
    if value is None:
        return ''
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return str(value)


def _trim_words(text: str, limit: int) -> str:
    words = text.split()
    if len(words) <= limit:
        return ' '.join(words)
    return ' '.join(words[:limit]) + '…'
