"""GraphQL documents sent to the GitHub API."""

# Only the fields the burndown pipeline reads are requested. Field values are
# capped at 100 per item; boards with more custom fields than that are not
# supported.
PROJECT_ITEMS_QUERY = """
query GetProjectItems($projectId: ID!, $itemsCursor: String, $pageSize: Int!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      id
      title
      number
      items(first: $pageSize, after: $itemsCursor) {
        totalCount
        pageInfo {
          endCursor
          hasNextPage
        }
        nodes {
          id
          createdAt
          updatedAt
          isArchived
          type
          fieldValues(first: 100) {
            nodes {
              ... on ProjectV2ItemFieldNumberValue {
                field { ... on ProjectV2FieldCommon { name } }
                number
              }
            }
          }
          content {
            __typename
            ... on DraftIssue {
              id
              title
              body
            }
            ... on Issue {
              id
              number
              title
              body
              state
              createdAt
              closedAt
              labels(first: 20) { nodes { name } }
            }
            ... on PullRequest {
              id
              number
              title
              body
              state
              createdAt
              closedAt
              labels(first: 20) { nodes { name } }
            }
          }
        }
      }
    }
  }
}
"""
