"""
Wikidata SPARQL source, used only to cross-check the merged coach.
Disabled unless FA_RESOLVER_KNOWLEDGE_GRAPH_ENABLED is set.
"""
from __future__ import annotations

from typing import Optional

import httpx

from shared.config import Settings
from shared.models.enums import SourceName, SubjectKind
from shared.utils.http_client import SourceHTTPClient

from resolver.cache import CacheStore
from resolver.errors import AdapterUnavailable
from resolver.sources.base import HTTPSourceAdapter, Now, SourceFacts, TeamFacts

SPARQL_PATH = "/sparql"

# association football club, national association football team
TEAM_CLASSES = ("wd:Q476028", "wd:Q6979593")

COACH_QUERY = """SELECT ?teamLabel ?coachLabel WHERE {{
  ?team rdfs:label|skos:altLabel "{name}"@en .
  VALUES ?cls {{ {classes} }}
  ?team wdt:P31 ?cls ;
        wdt:P286 ?coach .
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
}}
LIMIT 1"""


def build_query(name: str) -> str:
    safe = name.replace("\\", "\\\\").replace('"', '\\"')
    return COACH_QUERY.format(name=safe, classes=" ".join(TEAM_CLASSES))


class WikidataSource(HTTPSourceAdapter):
    def __init__(
        self,
        settings: Settings,
        cache: CacheStore[SourceFacts],
        timeout_s: float = 5.0,
        now: Optional[Now] = None,
        http: Optional[SourceHTTPClient] = None,
    ) -> None:
        http = http or SourceHTTPClient(
            source_name=SourceName.KNOWLEDGE_GRAPH.value,
            base_url=settings.wikidata_base_url,
            headers={
                "User-Agent": settings.user_agent,
                "Accept": "application/sparql-results+json",
            },
            timeout_s=timeout_s,
        )
        super().__init__(http, cache, now)

    @property
    def source_name(self) -> SourceName:
        return SourceName.KNOWLEDGE_GRAPH

    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        if kind != SubjectKind.TEAM:
            return None
        if not self._http.started:
            await self._http.start()
        try:
            resp = await self._http.post_form(
                SPARQL_PATH, data={"query": build_query(name)}, params={"format": "json"}
            )
            bindings = resp.json()["results"]["bindings"]
        except httpx.HTTPError as exc:
            raise AdapterUnavailable(self.source_name.value, type(exc).__name__) from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise AdapterUnavailable(self.source_name.value, "unexpected SPARQL payload") from exc

        if not bindings:
            return None
        row = bindings[0]
        coach = row.get("coachLabel", {}).get("value")
        if not coach:
            return None
        return self._facts(team=TeamFacts(name=row.get("teamLabel", {}).get("value"), coach=coach))
