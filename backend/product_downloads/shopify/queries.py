"""Admin GraphQL documents used by the app."""

PRODUCT_BY_ID = """
query getProduct($id: ID!) {
  product(id: $id) {
    id
    title
    handle
    totalVariants
    metafields(first: 50, namespace: "Download") {
      edges {
        node {
          id
          namespace
          key
          value
        }
      }
    }
    variants(first: 50) {
      edges {
        node {
          id
          title
          sku
          price
        }
      }
    }
  }
}
""".strip()


PRODUCTS_BY_SKU = """
query getProductBySku($query: String!) {
  products(first: 1, query: $query) {
    edges {
      node {
        id
        title
        handle
        totalVariants
        metafields(first: 50, namespace: "Download") {
          edges {
            node {
              id
              namespace
              key
              value
            }
          }
        }
      }
    }
  }
}
""".strip()


PRODUCT_UPDATE_METAFIELDS = """
mutation productUpdate($input: ProductInput!) {
  productUpdate(input: $input) {
    product {
      id
    }
    userErrors {
      field
      message
    }
  }
}
""".strip()


METAFIELD_DELETE = """
mutation metafieldDelete($input: MetafieldDeleteInput!) {
  metafieldDelete(input: $input) {
    deletedId
    userErrors {
      field
      message
    }
  }
}
""".strip()


WEBHOOK_SUBSCRIPTION_CREATE = """
mutation webhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $callbackUrl: URL!) {
  webhookSubscriptionCreate(
    topic: $topic
    webhookSubscription: { callbackUrl: $callbackUrl, format: JSON }
  ) {
    webhookSubscription {
      id
    }
    userErrors {
      field
      message
    }
  }
}
""".strip()
