# Services module
from stylist_service.services.content_fetcher import ContentFetcher, clean_html
from stylist_service.services.search_provider import SerpApiSearchProvider
from stylist_service.services.discovery import CategoryDiscovery, sanitize_colors, gender_term
