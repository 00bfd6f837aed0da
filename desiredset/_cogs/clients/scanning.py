"""
The discovery of the served resource kinds.

The discovery goes in two steps: first, the group-versions are listed
(the legacy core API at ``/api`` and the named groups at ``/apis``);
then, every group-version is read for its resources, all in parallel.
The subresources (e.g. ``pods/status``) are not kinds and are skipped.
"""
import asyncio
from typing import Collection, List, NamedTuple, Optional, Set

from desiredset._cogs.clients import api, errors
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import typedefs
from desiredset._cogs.structs import references


class GroupVersion(NamedTuple):
    url: str
    group: str
    version: str
    preferred: bool


async def scan_resources(
        *,
        settings: configuration.ApplySettings,
        logger: typedefs.Logger,
        groups: Optional[Collection[str]] = None,
) -> Collection[references.Resource]:
    group_versions: List[GroupVersion] = []
    if groups is None or '' in groups:
        group_versions.extend(await _list_core_versions(settings=settings, logger=logger))
    if groups is None or set(groups) - {''}:
        group_versions.extend(await _list_group_versions(groups=groups, settings=settings, logger=logger))

    results = await asyncio.gather(*[
        _read_group_version(gv, settings=settings, logger=logger)
        for gv in group_versions
    ])
    resources: Set[references.Resource] = set()
    for result in results:
        resources.update(result)
    logger.debug(f"Discovered {len(resources)} resources in {len(group_versions)} group-versions.")
    return resources


async def _list_core_versions(
        *,
        settings: configuration.ApplySettings,
        logger: typedefs.Logger,
) -> List[GroupVersion]:
    rsp = await api.get('/api', settings=settings, logger=logger)
    return [
        GroupVersion(url=f'/api/{version}', group='', version=version, preferred=True)
        for version in rsp['versions']
    ]


async def _list_group_versions(
        *,
        settings: configuration.ApplySettings,
        logger: typedefs.Logger,
        groups: Optional[Collection[str]],
) -> List[GroupVersion]:
    rsp = await api.get('/apis', settings=settings, logger=logger)
    return [
        GroupVersion(
            url=f'/apis/{group_dat["name"]}/{version_dat["version"]}',
            group=group_dat['name'],
            version=version_dat['version'],
            preferred=version_dat['version'] == group_dat['preferredVersion']['version'],
        )
        for group_dat in rsp['groups']
        if groups is None or group_dat['name'] in groups
        for version_dat in group_dat['versions']
    ]


async def _read_group_version(
        gv: GroupVersion,
        *,
        settings: configuration.ApplySettings,
        logger: typedefs.Logger,
) -> Collection[references.Resource]:
    try:
        rsp = await api.get(gv.url, settings=settings, logger=logger)
    except errors.APINotFoundError:
        # A group-version can vanish between the listing and the reading
        # (e.g. when its last CRD is deleted). It has no kinds then.
        logger.debug(f"Group-version {gv.url} is gone; skipping it.")
        return set()

    return {
        references.Resource(
            group=gv.group,
            version=gv.version,
            kind=resource['kind'],
            plural=resource['name'],
            namespaced=resource['namespaced'],
            preferred=gv.preferred,
            verbs=frozenset(resource.get('verbs') or []),
        )
        for resource in rsp.get('resources', [])
        if '/' not in resource['name']
    }
