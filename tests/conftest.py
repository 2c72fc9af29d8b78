"""Shared fixtures for schemakit tests."""

from datetime import datetime

import pytest

from schemakit.models import AuthorContext, ImageRef, PostContext, SiteContext


@pytest.fixture
def site():
    """A site with a customizer logo, social profiles and one attachment."""
    return SiteContext(
        name="Example Site",
        description="Just another site",
        url="https://example.com",
        admin_email="admin@example.com",
        custom_logo=ImageRef(url="https://example.com/wp-content/uploads/logo.png", width=600, height=60),
        options={
            'facebook_url': 'https://facebook.com/example',
            'twitter_url': 'https://twitter.com/example',
            'srk_global_phone': '+1-555-0100',
        },
        attachments={
            42: ImageRef(url="https://example.com/wp-content/uploads/hero.jpg", width=1600, height=900),
        },
        recent_featured_images=[
            ImageRef(url="https://example.com/wp-content/uploads/recent.jpg", width=800, height=600),
        ],
    )


@pytest.fixture
def bare_site():
    """A site with no logo, icon or social options."""
    return SiteContext(name="Bare Site", url="https://bare.example")


@pytest.fixture
def author():
    return AuthorContext(
        id=7,
        display_name="Jane Writer",
        url="https://example.com/author/jane",
        meta={'twitter': '@jane', 'description': 'Writes things.'},
    )


@pytest.fixture
def post(author):
    """A published blog post with a featured image and terms."""
    return PostContext(
        id=101,
        post_type="post",
        title="Hello <em>World</em>",
        excerpt="",
        content="<p>First paragraph of the post.</p><script>alert(1)</script><p>Second.</p>",
        date=datetime(2024, 3, 1, 9, 30),
        modified=datetime(2024, 3, 2, 10, 0),
        permalink="https://example.com/hello-world/",
        author=author,
        featured_image=ImageRef(url="https://example.com/wp-content/uploads/hello.jpg", width=1024, height=512),
        meta={
            'subtitle': 'A greeting',
            'event_date': '2024-05-01',
            'rating': '4.5',
            'reviews': '12',
        },
        terms={'category': ['News', 'Updates'], 'post_tag': []},
    )
