"""
GraphQL documents for the GitHub search endpoint.

COUNT_QUERY only asks for the result count of a predicate and is used to decide
whether a date range must be split. SEARCH_QUERY pages through the full pull
request field set, including the head commit's CI rollup and check suites.
"""

from miners.models import DateField, DateRange

COUNT_QUERY = """
query($query: String!) {
  search(query: $query, type: ISSUE, first: 1) {
    issueCount
  }
}
"""

SEARCH_QUERY = """
query($query: String!, $first: Int!, $after: String) {
  search(query: $query, type: ISSUE, first: $first, after: $after) {
    issueCount
    nodes {
      ... on PullRequest {
        url
        title
        state
        createdAt
        updatedAt
        mergedAt
        closedAt
        additions
        deletions
        changedFiles
        author {
          login
        }
        repository {
          name
        }
        reviews(first: 50) {
          totalCount
          nodes {
            state
            createdAt
            author {
              login
            }
          }
        }
        comments {
          totalCount
        }
        commits(first: 100) {
          totalCount
          nodes {
            commit {
              committedDate
            }
          }
        }
        lastCommit: commits(last: 1) {
          nodes {
            commit {
              committedDate
              statusCheckRollup {
                state
              }
              checkSuites(first: 20) {
                nodes {
                  conclusion
                  updatedAt
                }
              }
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""


def search_scope(target: str) -> str:
    """
    Qualifier restricting a search to an organization or a single repository.

    ``owner/name`` selects one repository; anything else is an organization
    login, which never contains a slash.
    """
    if "/" in target:
        return f"repo:{target}"
    return f"org:{target}"


def search_predicate(target: str, date_range: DateRange, date_field: DateField) -> str:
    """
    Build the search string selecting pull requests in a range.

    Args:
        target (str): Organization login, or ``owner/name`` for one repository.
        date_range (DateRange): Inclusive range of days.
        date_field (DateField): Whether the range bounds creation or update time.

    Returns:
        str: Predicate such as ``org:acme is:pr created:2024-01-01..2024-01-10``.
    """
    return f"{search_scope(target)} is:pr {DateField(date_field).value}:{date_range}"
