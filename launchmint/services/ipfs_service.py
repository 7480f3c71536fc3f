"""
IPFS service for uploading images and metadata
"""

import json
import asyncio
import logging
from typing import Tuple

import aiohttp

from launchmint.errors import UploadError
from launchmint.models import LaunchRequest, UploadedMetadata


class IPFSService:
    """Service for handling image and metadata uploads

    Uploads are never retried: a failed upload ends the launch attempt.
    """

    def __init__(self, session: aiohttp.ClientSession, pump_ipfs_url: str, bonk_storage_url: str,
                 bags_api_url: str):
        self.session = session
        self.pump_ipfs_url = pump_ipfs_url
        self.bonk_storage_url = bonk_storage_url.rstrip('/')
        self.bags_api_url = bags_api_url.rstrip('/')
        self.logger = logging.getLogger('launchmint.ipfs')

    async def fetch_image(self, image_url: str) -> Tuple[bytes, str]:
        """Download image from URL"""
        try:
            async with self.session.get(image_url) as response:
                if response.status != 200:
                    raise UploadError(f"Failed to download image: HTTP {response.status}")
                image_data = await response.read()
                content_type = response.headers.get('Content-Type', 'image/png')
        except aiohttp.ClientError as e:
            raise UploadError(f"Failed to download image: {e}")
        except asyncio.TimeoutError:
            raise UploadError("Failed to download image: timed out")

        if not image_data:
            raise UploadError("Downloaded image is empty")
        return image_data, content_type

    async def upload_pump_metadata(self, request: LaunchRequest) -> UploadedMetadata:
        """Combined image + metadata upload to the pump.fun IPFS endpoint"""
        image_data, content_type = await self.fetch_image(request.image_url)

        form = aiohttp.FormData()
        form.add_field('file', image_data, filename='token.png', content_type=content_type)
        form.add_field('name', request.name)
        form.add_field('symbol', request.symbol)
        form.add_field('description', request.description or '')
        form.add_field('twitter', request.twitter or '')
        form.add_field('telegram', request.telegram or '')
        form.add_field('website', request.website or '')
        form.add_field('showName', 'true')

        body = await self._post(self.pump_ipfs_url, data=form)
        try:
            uri = json.loads(body)['metadataUri']
        except (ValueError, KeyError, TypeError):
            raise UploadError('Failed to parse IPFS response')
        if not uri:
            raise UploadError('Failed to upload metadata to IPFS')

        self.logger.info(f"Metadata uploaded to IPFS: {uri}")
        return UploadedMetadata(uri=uri)

    async def upload_bonk_metadata(self, request: LaunchRequest) -> UploadedMetadata:
        """Image first, then a JSON document referencing the image URI"""
        image_data, content_type = await self.fetch_image(request.image_url)

        form = aiohttp.FormData()
        form.add_field('image', image_data, filename='token.png', content_type=content_type)
        image_uri = self._parse_uri(await self._post(f"{self.bonk_storage_url}/upload/img", data=form))
        self.logger.info(f"Image uploaded: {image_uri}")

        metadata = {
            'name': request.name,
            'symbol': request.symbol,
            'description': request.description or '',
            'createdOn': 'https://bonk.fun',
            'image': image_uri,
            'website': request.website or '',
            'twitter': request.twitter or '',
            'telegram': request.telegram or '',
        }
        uri = self._parse_uri(await self._post(f"{self.bonk_storage_url}/upload/meta", json=metadata))
        self.logger.info(f"Metadata uploaded: {uri}")
        return UploadedMetadata(uri=uri)

    async def upload_bags_metadata(self, request: LaunchRequest, api_key: str) -> UploadedMetadata:
        """Bags stores the metadata and issues the token mint in one call"""
        image_data, content_type = await self.fetch_image(request.image_url)

        form = aiohttp.FormData()
        form.add_field('image', image_data, filename='token.png', content_type=content_type)
        form.add_field('name', request.name)
        form.add_field('symbol', request.symbol.upper().replace('$', ''))
        form.add_field('description', request.description or '')
        for key in ('twitter', 'telegram', 'website'):
            value = getattr(request, key)
            if value:
                form.add_field(key, value)

        body = await self._post(f"{self.bags_api_url}/token-launch/create-token-info",
                                data=form, headers={'x-api-key': api_key})
        try:
            data = json.loads(body)
        except ValueError:
            raise UploadError('Failed to parse Bags metadata response')
        if not data.get('success'):
            raise UploadError(data.get('error') or 'Failed to create metadata')

        response = data.get('response') or {}
        uri, mint = response.get('tokenMetadata'), response.get('tokenMint')
        if not uri or not mint:
            raise UploadError('Bags metadata response missing tokenMetadata or tokenMint')

        self.logger.info(f"Bags token mint: {mint}")
        return UploadedMetadata(uri=uri, token_mint=mint)

    async def _post(self, url: str, **kwargs) -> str:
        try:
            async with self.session.post(url, **kwargs) as response:
                body = await response.text()
                if response.status not in (200, 201):
                    self.logger.error(f"Upload to {url} failed: HTTP {response.status} {body[:200]}")
                    raise UploadError(f"Upload failed: HTTP {response.status}")
                return body
        except aiohttp.ClientError as e:
            raise UploadError(f"Upload failed: {e}")
        except asyncio.TimeoutError:
            raise UploadError(f"Upload to {url} timed out")

    @staticmethod
    def _parse_uri(body: str) -> str:
        uri = body.strip().strip('"')
        if not uri.startswith(('http://', 'https://', 'ipfs://')):
            raise UploadError(f"Storage service returned no URI: {body[:100]!r}")
        return uri
