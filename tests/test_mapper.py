# tests/test_mapper.py
import pytest

from schemakit.config import MapperConfig
from schemakit.mapper import SchemaMapper
from schemakit.models import ImageRef, SchemaAssignment
from schemakit.storage import LocalSqliteStore


def make_mapper(site, config=None, **assignments):
    """Mapper over in-memory assignments keyed by schema key."""
    return SchemaMapper(
        {key: SchemaAssignment(schema_type=key, **value) for key, value in assignments.items()},
        site,
        config=config,
    )


ARTICLE = {
    'post_type': 'post',
    'meta_map': {
        'headline': 'post:post_title',
        'author': 'post:post_author',
        'image': 'featured_image',
        'description': 'meta:missing',
    },
}


class TestResolveSchemaType:
    """Tests for schema key to @type mapping."""

    @pytest.mark.parametrize("key,expected", [
        ('article', 'Article'),
        ('blog_posting', 'BlogPosting'),
        ('local_business', 'LocalBusiness'),
        ('faq', 'FAQPage'),
        ('howto', 'HowTo'),
        ('medical_condition', 'MedicalCondition'),
        ('something_else', 'Thing'),
    ])
    def test_known_keys(self, site, key, expected):
        assert make_mapper(site).resolve_schema_type(key) == expected

    def test_author_uses_assignment(self, site):
        mapper = make_mapper(site, author={'post_type': 'global', 'author_type': 'Organization'})
        assert mapper.resolve_schema_type('author') == 'Organization'
        assert make_mapper(site).resolve_schema_type('author') == 'Person'


class TestBuildSchema:
    """Tests for the per-post build."""

    def test_article(self, site, post):
        schema = make_mapper(site, article=ARTICLE).build_schema('article', post)

        assert schema == {
            '@context': 'https://schema.org',
            '@type': 'Article',
            'url': 'https://example.com/hello-world/',
            'datePublished': '2024-03-01T09:30:00',
            'dateModified': '2024-03-02T10:00:00',
            'mainEntityOfPage': {'@type': 'WebPage', '@id': 'https://example.com/hello-world/'},
            'headline': 'Hello World',
            'author': {'@type': 'Person', 'name': 'Jane Writer'},
            'image': {
                '@type': 'ImageObject',
                'url': 'https://example.com/wp-content/uploads/hello.jpg',
                'width': 1024,
                'height': 512,
            },
            'publisher': {
                '@type': 'Organization',
                'name': 'Example Site',
                'logo': 'https://example.com/wp-content/uploads/logo.png',
            },
        }

    def test_no_assignment(self, site, post):
        assert make_mapper(site).build_schema('article', post) is None

    def test_post_type_mismatch(self, site, post):
        post.post_type = 'page'
        assert make_mapper(site, article=ARTICLE).build_schema('article', post) is None

    def test_global_post_type_applies_everywhere(self, site, post):
        post.post_type = 'page'
        mapper = make_mapper(site, article={**ARTICLE, 'post_type': 'global'})
        assert mapper.build_schema('article', post)['@type'] == 'Article'

    def test_selected_post(self, site, post):
        assert make_mapper(site, article={**ARTICLE, 'selected_post': 999}).build_schema('article', post) is None
        assert make_mapper(site, article={**ARTICLE, 'selected_post': 101}).build_schema('article', post)

    def test_missing_required_field_rejected(self, site, post):
        """Test a schema without an author is not output."""
        mapper = make_mapper(site, article={'post_type': 'post', 'meta_map': {'headline': 'post:post_title'}})
        assert mapper.build_schema('article', post) is None

    def test_blog_posting_falls_back_to_article(self, site, post):
        schema = make_mapper(site, article=ARTICLE).build_schema('blog_posting', post)
        assert schema['@type'] == 'BlogPosting'
        assert schema['headline'] == 'Hello World'

    def test_default_image_dimensions(self, site, post):
        """Test images of unknown size get the configured defaults."""
        post.featured_image = ImageRef(url="https://cdn.example/pic.jpg")
        schema = make_mapper(site, article=ARTICLE).build_schema('article', post)
        assert schema['image']['width'] == 1200
        assert schema['image']['height'] == 800

        config = MapperConfig(default_image_width=1600, default_image_height=900)
        schema = make_mapper(site, config=config, article=ARTICLE).build_schema('article', post)
        assert (schema['image']['width'], schema['image']['height']) == (1600, 900)

    def test_relative_image_made_absolute(self, site, post):
        meta_map = {**ARTICLE['meta_map'], 'image': 'custom:/wp-content/uploads/inline.png'}
        schema = make_mapper(site, article={'post_type': 'post', 'meta_map': meta_map}).build_schema('article', post)
        assert schema['image']['url'] == 'https://example.com/wp-content/uploads/inline.png'

    def test_publisher_field(self, site, post):
        meta_map = {**ARTICLE['meta_map'], 'publisher': 'custom:Daily News'}
        schema = make_mapper(site, article={'post_type': 'post', 'meta_map': meta_map}).build_schema('article', post)
        assert schema['publisher']['name'] == 'Daily News'
        assert schema['publisher']['logo'] == site.custom_logo.url

    def test_publisher_without_logo(self, bare_site, post):
        schema = make_mapper(bare_site, article=ARTICLE).build_schema('article', post)
        assert schema['publisher'] == {'@type': 'Organization', 'name': 'Bare Site'}

    def test_author_url_becomes_id(self, site, post):
        meta_map = {**ARTICLE['meta_map'], 'author': 'custom:https://example.com/about'}
        schema = make_mapper(site, article={'post_type': 'post', 'meta_map': meta_map}).build_schema('article', post)
        assert schema['author'] == {'@type': 'Person', '@id': 'https://example.com/about'}

    def test_keywords_from_taxonomy(self, site, post):
        meta_map = {**ARTICLE['meta_map'], 'keywords': 'tax:category'}
        schema = make_mapper(site, article={'post_type': 'post', 'meta_map': meta_map}).build_schema('article', post)
        assert schema['keywords'] == ['News', 'Updates']

    def test_event_defaults(self, site, post):
        """Test events get the post date and an online location."""
        mapper = make_mapper(site, event={'post_type': 'post', 'meta_map': {'name': 'post:post_title'}})
        schema = mapper.build_schema('event', post)
        assert schema['startDate'] == '2024-03-01T09:30:00'
        assert schema['location'] == {'@type': 'Place', 'name': 'Online'}

    def test_event_start_date_mapping_overrides(self, site, post):
        meta_map = {'name': 'post:post_title', 'startDate': 'meta:event_date'}
        schema = make_mapper(site, event={'post_type': 'post', 'meta_map': meta_map}).build_schema('event', post)
        assert schema['startDate'] == '2024-05-01'

    def test_rating_from_post_meta(self, site, post):
        meta_map = {'name': 'post:post_title', 'offers': 'custom:9.99', 'ratingValue': 'meta:rating', 'reviewCount': 'meta:reviews'}
        schema = make_mapper(site, product={'post_type': 'post', 'meta_map': meta_map}).build_schema('product', post)
        assert schema['aggregateRating'] == {'@type': 'AggregateRating', 'ratingValue': '4.5', 'reviewCount': '12'}

    @pytest.mark.parametrize("reviews", ['1e999', '-1e999'])
    def test_infinite_review_count_ignored(self, site, post, reviews):
        """Test a review count that overflows to infinity drops the rating instead of raising."""
        post.meta['reviews'] = reviews
        meta_map = {'name': 'post:post_title', 'offers': 'custom:9.99', 'ratingValue': 'meta:rating', 'reviewCount': 'meta:reviews'}
        schema = make_mapper(site, product={'post_type': 'post', 'meta_map': meta_map}).build_schema('product', post)
        assert schema['name'] == 'Hello World'
        assert 'aggregateRating' not in schema

    def test_url_field_markup_stripped(self, site, post):
        post.meta['website'] = 'https://example.com/page?q="<script>x</script>'
        meta_map = {**ARTICLE['meta_map'], 'url': 'meta:website'}
        schema = make_mapper(site, article={'post_type': 'post', 'meta_map': meta_map}).build_schema('article', post)
        assert schema['url'] == 'https://example.com/page?q=scriptx/script'

    def test_author_id_markup_stripped(self, site, post):
        meta_map = {**ARTICLE['meta_map'], 'author': 'custom:https://example.com/about"><b>'}
        schema = make_mapper(site, article={'post_type': 'post', 'meta_map': meta_map}).build_schema('article', post)
        assert schema['author'] == {'@type': 'Person', '@id': 'https://example.com/aboutb'}

    def test_image_respects_enabled_fields(self, site, post):
        article = {**ARTICLE, 'enabled_fields': ['headline', 'author']}
        schema = make_mapper(site, article=article).build_schema('article', post)
        assert 'image' not in schema
        assert schema['headline'] == 'Hello World'


LOCAL_BUSINESS = {
    'post_type': 'global',
    'meta_map': {
        'name': "custom:Joe's Diner",
        'streetAddress': 'custom:1 Main St',
        'addressLocality': 'custom:Springfield',
        'addressCountry': 'custom:US',
        'telephone': 'custom:+1 555 0100',
        'openingHours': 'custom:Mo-Fr 09:00-17:00, Sa 10:00-14:00',
        'latitude': 'custom:40.7128',
        'longitude': 'custom:-74.0060',
        'ratingValue': 'custom:4.5',
        'reviewCount': 'custom:120',
        'facebook_url': 'https://facebook.com/joes',
        'twitter_url': 'custom:https://twitter.com/joes',
        'instagram_url': 'custom:not a url',
        'youtube_url': 'https://facebook.com/joes',
    },
}


def with_fields(base, **meta):
    return {**base, 'meta_map': {**base['meta_map'], **meta}}


class TestBuildGlobalSchema:
    """Tests for the site-wide build."""

    def test_local_business(self, site):
        schema = make_mapper(site, local_business=LOCAL_BUSINESS).build_global_schema('local_business')

        assert schema['@type'] == 'LocalBusiness'
        assert schema['name'] == "Joe's Diner"
        assert schema['address'] == {
            '@type': 'PostalAddress',
            'streetAddress': '1 Main St',
            'addressLocality': 'Springfield',
            'addressCountry': {'@type': 'Country', 'name': 'US'},
        }
        assert schema['telephone'] == '+1 555 0100'
        assert schema['openingHours'] == ['Mo-Fr 09:00-17:00', 'Sa 10:00-14:00']
        assert schema['geo'] == {'@type': 'GeoCoordinates', 'latitude': 40.7128, 'longitude': -74.006}
        assert schema['aggregateRating'] == {'@type': 'AggregateRating', 'ratingValue': '4.5', 'reviewCount': '120'}
        assert schema['sameAs'] == ['https://facebook.com/joes', 'https://twitter.com/joes']

    def test_social_url_markup_stripped(self, site):
        lb = with_fields(LOCAL_BUSINESS, twitter_url="custom:https://twitter.com/joes'</script>")
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert schema['sameAs'] == ['https://facebook.com/joes', "https://twitter.com/joes'/script"]

    def test_logo_respects_enabled_fields(self, site):
        meta_map = {'name': 'site:site_name', 'logo': 'site_logo'}
        mapper = make_mapper(site)

        assert mapper.preview('organization', meta_map)['logo'] == site.custom_logo.url
        assert mapper.preview('organization', meta_map, enabled_fields=['name']) == {
            '@context': 'https://schema.org',
            '@type': 'Organization',
            'name': 'Example Site',
        }

    def test_address_sub_fields_not_top_level(self, site):
        schema = make_mapper(site, local_business=LOCAL_BUSINESS).build_global_schema('local_business')
        for sub_field in ('streetAddress', 'addressLocality', 'addressCountry'):
            assert sub_field not in schema

    def test_ignores_post_type(self, site):
        lb = {**LOCAL_BUSINESS, 'post_type': 'page'}
        assert make_mapper(site, local_business=lb).build_global_schema('local_business') is not None

    def test_single_opening_hours_stays_string(self, site):
        lb = with_fields(LOCAL_BUSINESS, openingHours='custom:Mo-Su 00:00-23:59')
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert schema['openingHours'] == 'Mo-Su 00:00-23:59'

    def test_incomplete_geo_dropped(self, site):
        lb = with_fields(LOCAL_BUSINESS, longitude='custom:')
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert 'geo' not in schema

    @pytest.mark.parametrize("latitude", ['custom:95', 'custom:1.2.3', 'custom:abc'])
    def test_invalid_latitude_drops_geo(self, site, latitude):
        lb = with_fields(LOCAL_BUSINESS, latitude=latitude)
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert 'geo' not in schema

    def test_zero_coordinates_kept(self, site):
        lb = with_fields(LOCAL_BUSINESS, latitude='custom:0', longitude='custom:0')
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert schema['geo'] == {'@type': 'GeoCoordinates', 'latitude': 0.0, 'longitude': 0.0}

    def test_coordinate_cleaned(self, site):
        lb = with_fields(LOCAL_BUSINESS, latitude='custom:40.5°N')
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert schema['geo']['latitude'] == 40.5

    @pytest.mark.parametrize("rating", ['custom:0', 'custom:5.5', 'custom:none'])
    def test_out_of_range_rating_drops_aggregate(self, site, rating):
        lb = with_fields(LOCAL_BUSINESS, ratingValue=rating)
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert 'aggregateRating' not in schema

    def test_enabled_fields(self, site):
        """Test only enabled fields are processed; address enables its sub-fields."""
        lb = {**LOCAL_BUSINESS, 'enabled_fields': ['name', 'address']}
        schema = make_mapper(site, local_business=lb).build_global_schema('local_business')
        assert set(schema) == {'@context', '@type', 'name', 'address'}

    def test_address_not_enabled_fails_validation(self, site):
        lb = {**LOCAL_BUSINESS, 'enabled_fields': ['name', 'telephone']}
        assert make_mapper(site, local_business=lb).build_global_schema('local_business') is None

    def test_organization_defaults(self, site):
        """Test organizations get the site logo and social profiles."""
        mapper = make_mapper(site, organization={'post_type': 'global', 'meta_map': {'name': 'site:site_name'}})
        schema = mapper.build_global_schema('organization')
        assert schema['logo'] == site.custom_logo.url
        assert schema['sameAs'] == ['https://facebook.com/example', 'https://twitter.com/example']

    def test_person_only_fields_dropped_outside_author(self, site):
        meta_map = {'name': 'site:site_name', 'jobTitle': 'custom:CEO', 'url': 'custom:not a url'}
        schema = make_mapper(site, organization={'post_type': 'global', 'meta_map': meta_map}).build_global_schema('organization')
        assert 'jobTitle' not in schema
        assert 'url' not in schema

    def test_contact_point(self, site):
        meta_map = {'name': 'site:site_name', 'contactPoint': 'site:phone', 'url': 'site:site_url'}
        schema = make_mapper(site, organization={'post_type': 'global', 'meta_map': meta_map}).build_global_schema('organization')
        assert schema['contactPoint'] == {
            '@type': 'ContactPoint',
            'telephone': '+1-555-0100',
            'contactType': 'customer service',
        }
        assert schema['url'] == 'https://example.com'

    def test_featured_image_uses_recent_post(self, site):
        meta_map = {'name': 'site:site_name', 'image': 'featured_image'}
        schema = make_mapper(site, organization={'post_type': 'global', 'meta_map': meta_map}).build_global_schema('organization')
        assert schema['image'] == {
            '@type': 'ImageObject',
            'url': 'https://example.com/wp-content/uploads/recent.jpg',
            'width': 800,
            'height': 600,
        }

    def test_featured_image_falls_back_to_logo(self, site):
        site.recent_featured_images = []
        meta_map = {'name': 'site:site_name', 'image': 'featured_image'}
        schema = make_mapper(site, organization={'post_type': 'global', 'meta_map': meta_map}).build_global_schema('organization')
        assert schema['image']['url'] == site.custom_logo.url
        assert schema['image']['width'] == 600

    def test_image_attachment_dimensions(self, site):
        meta_map = {'name': 'site:site_name', 'image': 'custom:https://example.com/wp-content/uploads/hero.jpg'}
        schema = make_mapper(site, organization={'post_type': 'global', 'meta_map': meta_map}).build_global_schema('organization')
        assert (schema['image']['width'], schema['image']['height']) == (1600, 900)

    def test_logo_must_look_like_url(self, site):
        meta_map = {'name': 'site:site_name', 'logo': 'custom:no logo here'}
        schema = make_mapper(site, organization={'post_type': 'global', 'meta_map': meta_map}).build_global_schema('organization')
        # Falls back to the default site logo
        assert schema['logo'] == site.custom_logo.url

    def test_website_requires_url(self, site):
        mapper = make_mapper(site, website={'post_type': 'global', 'meta_map': {'name': 'site:site_name'}})
        assert mapper.build_global_schema('website') is None

    def test_dict_assignments(self, site):
        mapper = SchemaMapper(
            {'website': {'post_type': 'global', 'meta_map': {'name': 'site:site_name', 'url': 'site:site_url'}}},
            site,
        )
        assert mapper.build_global_schema('website')['url'] == 'https://example.com'


class TestAuthorSchema:
    """Tests for the author key's Person/Organization handling."""

    def test_organization_author(self, site):
        author = {
            'post_type': 'global',
            'author_type': 'Organization',
            'meta_map': {
                'name': 'custom:Acme',
                'jobTitle': 'custom:CEO',
                'contactPoint': 'custom:+1 555',
                'image': 'site_logo',
            },
        }
        schema = make_mapper(site, author=author).build_global_schema('author')

        assert schema['@type'] == 'Organization'
        assert 'jobTitle' not in schema
        assert schema['contactPoint']['telephone'] == '+1 555'
        assert schema['image'] == {
            '@type': 'ImageObject',
            'url': site.custom_logo.url,
            'width': 600,
            'height': 60,
        }

    def test_person_author(self, site):
        author = {
            'post_type': 'global',
            'meta_map': {
                'name': 'custom:Jane',
                'jobTitle': 'custom:Editor',
                'worksFor': 'custom:Acme',
                'contactPoint': 'custom:123',
                'image': 'custom:https://example.com/jane.jpg',
            },
        }
        schema = make_mapper(site, author=author).build_global_schema('author')

        assert schema['@type'] == 'Person'
        assert schema['jobTitle'] == 'Editor'
        assert schema['worksFor'] == {'@type': 'Organization', 'name': 'Acme'}
        assert 'contactPoint' not in schema
        assert schema['image'] == 'https://example.com/jane.jpg'

    def test_author_validated_as_emitted_type(self, site):
        author = {'post_type': 'global', 'meta_map': {'jobTitle': 'custom:Editor'}}
        assert make_mapper(site, author=author).build_global_schema('author') is None


class TestBuildFaqSchema:
    """Tests for FAQPage assembly."""

    def test_items(self, site):
        schema = make_mapper(site).build_faq_schema([
            ('What <b>is</b> it?', 'It is <strong>this</strong>.'),
            ('', 'Skipped'),
            {'question': 'How?', 'answer': 'Line one\n\nLine two'},
            {'question': 'Empty?', 'answer': '<script>x</script>'},
        ])

        assert schema['@type'] == 'FAQPage'
        assert schema['mainEntity'] == [
            {
                '@type': 'Question',
                'name': 'What is it?',
                'acceptedAnswer': {'@type': 'Answer', 'text': '<p>It is <strong>this</strong>.</p>'},
            },
            {
                '@type': 'Question',
                'name': 'How?',
                'acceptedAnswer': {'@type': 'Answer', 'text': '<p>Line one</p><p>Line two</p>'},
            },
        ]

    def test_no_items(self, site):
        assert make_mapper(site).build_faq_schema([]) is None
        assert make_mapper(site).build_faq_schema([('', '')]) is None


class TestPreview:
    """Tests for unvalidated admin previews."""

    def test_preview_skips_validation(self, site):
        schema = make_mapper(site).preview('website', {'name': 'custom:My Site'})
        assert schema == {'@context': 'https://schema.org', '@type': 'WebSite', 'name': 'My Site'}

    def test_preview_without_data(self, site):
        assert make_mapper(site).preview('website', {'name': 'meta:missing'}) is None

    def test_preview_with_post(self, site, post):
        schema = make_mapper(site).preview('article', {'headline': 'post:post_title'}, post=post)
        assert schema['headline'] == 'Hello World'
        assert schema['url'] == post.permalink
        assert 'publisher' not in schema

    def test_preview_drops_empty_values(self, site, post):
        """Test a post without a modified date previews without dateModified."""
        post.modified = None
        schema = make_mapper(site).preview('article', {'headline': 'post:post_title'}, post=post)
        assert 'dateModified' not in schema
        assert schema['datePublished'] == '2024-03-01T09:30:00'

    def test_preview_without_address_data(self, site):
        schema = make_mapper(site).preview('local_business', {'name': 'custom:Diner', 'streetAddress': 'meta:missing'})
        assert schema == {'@context': 'https://schema.org', '@type': 'LocalBusiness', 'name': 'Diner'}

    def test_preview_author_type(self, site):
        schema = make_mapper(site).preview('author', {'name': 'custom:Acme'}, author_type='Organization')
        assert schema['@type'] == 'Organization'


class TestMapperWithStore:
    """Tests for reading assignments from the settings store."""

    def test_build_from_store(self, tmp_path, site, post):
        store = LocalSqliteStore(db_url=f"sqlite:///{tmp_path / 'mapper.db'}")
        store.save_assignment(SchemaAssignment(schema_type='article', **ARTICLE))

        mapper = SchemaMapper(store, site)
        assert mapper.build_schema('article', post)['headline'] == 'Hello World'
        assert mapper.build_schema('news_article', post)['@type'] == 'NewsArticle'
        store.close()
